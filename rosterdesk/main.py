"""
RosterDesk - Flask Application
"""

from flask import Flask, request, jsonify
from dotenv import load_dotenv
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix
import os
import sys

# Load environment variables from .env file
load_dotenv()

from . import config
from .admin_routes import admin_bp
from .errors import RosterError
from .extensions import limiter
from .images import ImageFetcher
from .logging_config import setup_logging
from .routes import bp
from .security_middleware import SecurityMiddleware
from .storage import StorageManager
from .uploads import CloudinaryUploader


def create_app(config_overrides=None):
    """Create and configure the Flask application

    Args:
        config_overrides: Optional mapping applied on top of the environment
            configuration (tests use it for DATA_DIR and credentials)
    """
    app = Flask(__name__)

    # Configuration
    app.config['JSON_AS_ASCII'] = False
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_UPLOAD_SIZE
    app.config['DATA_DIR'] = config.DATA_DIR
    app.config['ADMIN_USER'] = config.ADMIN_USER
    app.config['ADMIN_PASS'] = config.ADMIN_PASS
    app.config['CORS_ALLOWED_ORIGINS'] = config.CORS_ALLOWED_ORIGINS
    app.config['LOGO_PATH'] = config.LOGO_PATH
    app.config['IMAGE_FETCH_TIMEOUT'] = config.IMAGE_FETCH_TIMEOUT
    app.config['RATELIMIT_ENABLED'] = os.environ.get('RATELIMIT_ENABLED', 'true').lower() != 'false'
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(config.LOG_LEVEL)
    if not app.config['ADMIN_USER'] or not app.config['ADMIN_PASS']:
        app.logger.warning("ADMIN_USER/ADMIN_PASS not set - admin area disabled")

    # Shared services
    app.extensions['storage'] = StorageManager(app.config['DATA_DIR'])
    app.extensions['image_fetcher'] = ImageFetcher(timeout=app.config['IMAGE_FETCH_TIMEOUT'])
    app.extensions['uploader'] = CloudinaryUploader()

    # Security: Initialize rate limiting
    limiter.init_app(app)

    # Security: Initialize security headers
    is_production = os.environ.get('FLASK_ENV') == 'production'
    Talisman(
        app,
        force_https=is_production,
        strict_transport_security=is_production,
        strict_transport_security_max_age=31536000,
        strict_transport_security_include_subdomains=True,
        content_security_policy={
            'default-src': "'none'",
            'frame-ancestors': "'none'",
        },
        frame_options='DENY',
        referrer_policy='strict-origin-when-cross-origin'
    )

    # Security: Handle reverse proxy headers (X-Forwarded-*)
    num_proxies = int(os.environ.get('PROXY_FIX_NUM_PROXIES', '1'))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=num_proxies, x_proto=num_proxies, x_host=num_proxies)
        app.logger.info(f"ProxyFix enabled with {num_proxies} proxy(ies)")

    # CORS allow-list and response headers
    SecurityMiddleware(app)

    # Register blueprints
    app.register_blueprint(bp)
    app.register_blueprint(admin_bp)

    # Production: Health check endpoint
    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for load balancers and monitoring"""
        return jsonify({
            'status': 'healthy',
            'service': 'RosterDesk'
        }), 200

    @app.errorhandler(RosterError)
    def handle_roster_error(e):
        return jsonify({'success': False, 'errors': e.to_errors()}), e.status_code

    # Add error handlers for API routes to return JSON instead of HTML
    @app.errorhandler(500)
    def handle_500_error(e):
        """Return JSON for API errors - sanitized to prevent information leakage"""
        if request.path.startswith('/api/'):
            app.logger.error(f"500 error on {request.path}: {e}", exc_info=True)
            return jsonify({
                'success': False,
                'errors': ['An internal error occurred. Please try again later.']
            }), 500
        return e

    @app.errorhandler(404)
    def handle_404_error(e):
        """Return JSON for API 404 errors"""
        if request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'errors': ['Endpoint not found']
            }), 404
        return e

    @app.errorhandler(405)
    def handle_405_error(e):
        if request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'errors': ['Method not allowed']
            }), 405
        return e

    @app.errorhandler(413)
    def handle_413_error(e):
        """Uploads above MAX_CONTENT_LENGTH"""
        return jsonify({
            'success': False,
            'errors': [f'Upload too large (max {config.MAX_UPLOAD_SIZE // (1024 * 1024)} MB)']
        }), 413

    @app.errorhandler(429)
    def handle_429_error(e):
        return jsonify({
            'success': False,
            'errors': ['Too many requests. Please try again later.']
        }), 429

    return app


def main():
    """Main entry point - Development only"""
    # Security: Prevent running Flask dev server in production
    flask_env = os.environ.get('FLASK_ENV', '').strip().lower()
    if flask_env == 'production':
        print("ERROR: Flask development server cannot run in production mode.")
        print("Use gunicorn or another production WSGI server instead:")
        print("  gunicorn -c gunicorn.conf.py wsgi:app")
        sys.exit(1)

    app = create_app()
    port = int(os.environ.get('PORT', 4000))

    print(f"RosterDesk starting in DEVELOPMENT mode on http://127.0.0.1:{port}")
    print("Press Ctrl+C to stop the application")
    print()
    print("WARNING: This is the development server. For production, use:")
    print("  gunicorn -c gunicorn.conf.py wsgi:app")

    try:
        app.run(host='127.0.0.1', port=port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down RosterDesk...")


if __name__ == '__main__':
    main()
