#!/usr/bin/env python3
"""Development server runner for EventHub."""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def setup_environment():
    """Load .env and default the Flask development settings."""
    project_root = Path(__file__).parent
    sys.path.insert(0, str(project_root))

    env_file = project_root / '.env'
    if env_file.exists():
        load_dotenv(env_file)
        print(f"✓ Loaded environment from {env_file}")
    else:
        print(f"⚠️ No .env file found at {env_file}")

    os.environ.setdefault('FLASK_APP', 'eventhub')
    os.environ.setdefault('FLASK_ENV', 'development')
    os.environ.setdefault('FLASK_DEBUG', '1')
    os.environ.setdefault('SESSION_COOKIE_SECURE', 'false')


def initialize_database(app):
    """Create tables on a fresh development database."""
    from eventhub.extensions import db

    with app.app_context():
        try:
            db.create_all()
            print("✓ Database tables ready")
        except Exception as e:
            print(f"❌ Failed to create database tables: {e}")
            return False
    return True


def main():
    print("EventHub - Development Setup")
    print("=" * 60)
    setup_environment()

    from eventhub import create_app
    app = create_app()

    if not initialize_database(app):
        sys.exit(1)

    print(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")
    print(f"Storage: {app.config['STORAGE_ROOT']}")
    print("\n🛠️ To create demo data, run in another terminal:")
    print("   flask --app eventhub seed demo")
    print("   Then sign in as admin@example.com / password123")
    print("\n⏹️ Press Ctrl+C to stop the server")
    print("=" * 60)

    try:
        app.run(host='0.0.0.0', port=5000, debug=True, use_reloader=True)
    except KeyboardInterrupt:
        print("\n\n🛑 Development server stopped by user")


if __name__ == "__main__":
    main()
