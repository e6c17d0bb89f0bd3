import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Provide a safe development fallback to avoid 500s when SECRET_KEY is missing.
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-me'
    DATABASE_URL = os.getenv('DATABASE_URL')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or 'sqlite:///eventhub.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'true').lower() in ('1', 'true', 'yes')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_SECURE = SESSION_COOKIE_SECURE
    REMEMBER_COOKIE_HTTPONLY = True
    WTF_CSRF_TIME_LIMIT = None
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'true').lower() in ('1', 'true', 'yes')

    # Object storage: one directory per bucket below STORAGE_ROOT
    STORAGE_ROOT = os.getenv('STORAGE_ROOT', 'storage')
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', str(50 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE + 1024 * 1024

    # Chapter analytics figures that are not derived from stored data yet
    CHAPTER_LTV = float(os.getenv('CHAPTER_LTV', '15000'))
    CHAPTER_CLOSE_PERCENTAGE = float(os.getenv('CHAPTER_CLOSE_PERCENTAGE', '75'))

    # Notification bridges: per-subscription queue cap and idle cutoff in seconds
    NOTIFICATION_QUEUE_SIZE = int(os.getenv('NOTIFICATION_QUEUE_SIZE', '100'))
    NOTIFICATION_IDLE_TIMEOUT = int(os.getenv('NOTIFICATION_IDLE_TIMEOUT', '1800'))

    # CORS for the /functions/v1 endpoints
    FUNCTIONS_ALLOWED_ORIGIN = os.getenv('FUNCTIONS_ALLOWED_ORIGIN', '*')
