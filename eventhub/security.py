"""Security headers and request-size checks."""

from flask import abort, request


def configure_security_headers(app):
    """Configure security headers."""

    @app.after_request
    def add_security_headers(response):
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'no-referrer-when-downgrade')

        csp_directives = [
            "default-src 'self'",
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
            "img-src 'self' data: https:",
            "media-src 'self' https:",
            "font-src 'self' https://cdn.jsdelivr.net",
            "connect-src 'self'",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'"
        ]
        response.headers.setdefault('Content-Security-Policy', "; ".join(csp_directives))

        if request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response

    return app


def validate_input_length(app):
    """Reject JSON bodies over 1MB; file uploads are bounded by MAX_CONTENT_LENGTH."""

    @app.before_request
    def limit_request_size():
        if request.is_json and request.content_length and request.content_length > 1024 * 1024:
            abort(413)

    return app
