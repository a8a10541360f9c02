from flask import Flask, request, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_mail import Mail
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from flask_migrate import Migrate
from apscheduler.schedulers.background import BackgroundScheduler
from werkzeug.exceptions import HTTPException
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Initialize Flask extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
mail = Mail()
csrf = CSRFProtect()
migrate = Migrate()
scheduler = BackgroundScheduler()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Authentication required'}), 401


def _env_flag(name, default='false'):
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'default_secret_key_for_development')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URI', 'sqlite:///lifeflow.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECURITY_PASSWORD_SALT'] = os.getenv('SECURITY_PASSWORD_SALT', 'password-reset-salt')
    app.config['WTF_CSRF_ENABLED'] = True
    app.config['WTF_CSRF_SECRET_KEY'] = os.getenv('CSRF_SECRET_KEY', 'default_csrf_key_for_development')

    # Email configuration
    app.config['MAIL_SERVER'] = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    app.config['MAIL_PORT'] = int(os.getenv('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = True
    app.config['MAIL_USERNAME'] = os.getenv('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.getenv('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.getenv('MAIL_DEFAULT_SENDER', 'no-reply@lifeflow.local')

    # Push notifications (Firebase Cloud Messaging)
    app.config['FIREBASE_SERVICE_ACCOUNT_JSON'] = os.getenv('FIREBASE_SERVICE_ACCOUNT_JSON')

    # Request lifecycle
    app.config['REQUEST_TTL_HOURS'] = int(os.getenv('REQUEST_TTL_HOURS', 24))
    app.config['CONTACT_REQUEST_TTL_HOURS'] = int(os.getenv('CONTACT_REQUEST_TTL_HOURS', 72))
    app.config['SCHEDULER_ENABLED'] = _env_flag('SCHEDULER_ENABLED')
    app.config['EXPIRY_SWEEP_MINUTES'] = int(os.getenv('EXPIRY_SWEEP_MINUTES', 15))
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if test_config is not None:
        app.config.update(test_config)

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('lifeflow').setLevel(app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions with app
    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    csrf.init_app(app)
    migrate.init_app(app, db)

    @app.after_request
    def set_csrf_cookie(response):
        if app.config['WTF_CSRF_ENABLED'] and 'csrf_token' not in request.cookies:
            response.set_cookie('csrf_token', generate_csrf())
        return response

    register_error_handlers(app)

    # Register blueprints
    from lifeflow.routes.auth import auth
    from lifeflow.routes.profile import profile
    from lifeflow.routes.requests import requests_bp
    from lifeflow.routes.contacts import contacts
    from lifeflow.routes.notifications import notifications
    from lifeflow.routes.main import main

    app.register_blueprint(auth, url_prefix='/auth')
    app.register_blueprint(profile, url_prefix='/profile')
    app.register_blueprint(requests_bp, url_prefix='/requests')
    app.register_blueprint(contacts, url_prefix='/contact-requests')
    app.register_blueprint(notifications, url_prefix='/notifications')
    app.register_blueprint(main)

    # Change feed listeners hook into every SQLAlchemy session
    from lifeflow.utils import changes
    changes.install()

    # Create database tables
    with app.app_context():
        db.create_all()

    if app.config['SCHEDULER_ENABLED']:
        from lifeflow.utils.scheduler import start_scheduler
        start_scheduler(app)

    return app


def register_error_handlers(app):
    from lifeflow.utils.errors import LifeFlowError

    @app.errorhandler(LifeFlowError)
    def handle_lifeflow_error(error):
        return jsonify({'success': False, 'message': error.message}), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'success': False, 'message': error.description}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception(f"Unhandled error: {str(error)}")
        return jsonify({'success': False, 'message': 'Internal server error'}), 500
