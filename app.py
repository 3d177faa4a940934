import os
import logging
from datetime import datetime, timedelta
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_compress import Compress
from sqlalchemy.orm import DeclarativeBase
from werkzeug.middleware.proxy_fix import ProxyFix

from utils.logging_config import setup_logging, log_request_start, log_request_end

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

db = SQLAlchemy(model_class=Base)
jwt = JWTManager()
compress = Compress()

def create_app(config_overrides=None):
    # Create the app
    app = Flask(__name__)
    # Enforce SESSION_SECRET requirement
    app.secret_key = os.environ.get("SESSION_SECRET")
    if not app.secret_key:
        raise RuntimeError("SESSION_SECRET environment variable is required but not set")
    # Trust one proxy for X-Forwarded-For/Proto/Host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    setup_logging(app)

    # CORS Configuration (restricted origins)
    production_origins = os.environ.get('ALLOWED_ORIGINS', '').split(',')
    allowed_origins = [origin.strip() for origin in production_origins if origin.strip()]

    # Fallback to localhost for development only if no origins set
    if not allowed_origins:
        allowed_origins = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:3000"]

    CORS(app, origins=allowed_origins,
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"])

    # Configure compression for JSON responses
    app.config['COMPRESS_MIMETYPES'] = ['application/json', 'text/plain']
    app.config['COMPRESS_LEVEL'] = 6
    app.config['COMPRESS_MIN_SIZE'] = 500
    compress.init_app(app)

    # Account mirror database - PostgreSQL in production, SQLite for development
    database_url = os.environ.get("DATABASE_URL") or "sqlite:///logitx.db"
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # KYC uploads carry five documents plus a logo
    app.config["MAX_CONTENT_LENGTH"] = 40 * 1024 * 1024

    # JWT Configuration
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY') or app.secret_key
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=1)
    app.config['JWT_ALGORITHM'] = 'HS256'

    # Document store client injected by tests or emulators; None means Firebase
    app.config.setdefault('FIRESTORE_CLIENT', None)

    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({
            'success': False,
            'error': 'UNAUTHORIZED',
            'message': 'Please sign in to continue'
        }), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({
            'success': False,
            'error': 'TOKEN_EXPIRED',
            'message': 'Session expired. Please sign in again.'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({
            'success': False,
            'error': 'INVALID_TOKEN',
            'message': 'Please sign in to continue'
        }), 401

    app.before_request(log_request_start)
    app.after_request(log_request_end)

    # Register blueprints
    from auth import auth_bp
    from onboarding_routes import onboarding_bp
    from corporate_routes import corporate_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(onboarding_bp, url_prefix='/api/onboarding')
    app.register_blueprint(corporate_bp, url_prefix='/api/corporate')

    # Health check endpoint for deployment
    @app.route('/api/health')
    def health():
        """Health check with configuration readiness"""
        from utils.config_validator import check_readiness
        readiness = check_readiness()
        return {
            'status': 'ok',
            'timestamp': datetime.utcnow().isoformat(),
            'configuration': {
                'ready': readiness['ready'],
                'firebase_configured': readiness['firebase_configured'],
                'cloudinary_configured': readiness['cloudinary_configured'],
                'support_relay_configured': readiness['support_relay_configured']
            }
        }, 200

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({
            'success': False,
            'error': 'PAYLOAD_TOO_LARGE',
            'message': 'Upload is too large'
        }), 413

    with app.app_context():
        # Make sure to import the models here or their tables won't be created
        import models  # noqa: F401
        db.create_all()

    logger.info("LogiTx application created")
    return app
