"""
Security Middleware

Adds the request/response hardening shared by every route:
- CORS with an explicit origin allow-list (the registration frontend and the
  admin panel are served from other origins)
- Security header injection
"""

from flask import request, current_app, make_response

CORS_ALLOWED_METHODS = 'GET, POST, PUT, DELETE, OPTIONS'
CORS_ALLOWED_HEADERS = 'Authorization, Content-Type'
CORS_EXPOSED_HEADERS = 'Content-Disposition'
CORS_MAX_AGE = '600'


class SecurityMiddleware:
    """CORS allow-list and security headers"""

    def __init__(self, app=None):
        self.app = app
        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize middleware with Flask app"""
        self.app = app

        @app.before_request
        def cors_preflight():
            """Answer CORS preflight requests before routing"""
            if request.method != 'OPTIONS' or 'Access-Control-Request-Method' not in request.headers:
                return None
            origin = request.headers.get('Origin')
            if not self._origin_allowed(origin):
                current_app.logger.warning(f"CORS preflight rejected for origin: {origin}")
                return make_response('', 403)
            response = make_response('', 204)
            response.headers['Access-Control-Allow-Methods'] = CORS_ALLOWED_METHODS
            response.headers['Access-Control-Allow-Headers'] = CORS_ALLOWED_HEADERS
            response.headers['Access-Control-Max-Age'] = CORS_MAX_AGE
            return response

        @app.after_request
        def add_headers(response):
            """Add CORS and security headers"""
            origin = request.headers.get('Origin')
            if self._origin_allowed(origin):
                response.headers['Access-Control-Allow-Origin'] = origin
                response.headers['Access-Control-Allow-Credentials'] = 'true'
                response.headers['Access-Control-Expose-Headers'] = CORS_EXPOSED_HEADERS
                response.headers.add('Vary', 'Origin')

            # Remove server header (already handled by gunicorn/nginx)
            response.headers.pop('Server', None)

            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'SAMEORIGIN'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            response.headers['Permissions-Policy'] = (
                'geolocation=(), microphone=(), camera=(), '
                'payment=(), usb=(), magnetometer=(), gyroscope=()'
            )
            return response

    def _origin_allowed(self, origin):
        if not origin:
            return False
        allowed = self.app.config.get('CORS_ALLOWED_ORIGINS', [])
        return origin in allowed
