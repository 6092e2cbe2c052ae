# app.py
import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask, request
from flask_cors import CORS
from flask_login import LoginManager
from pymongo.errors import DuplicateKeyError
from werkzeug.exceptions import HTTPException

from backend.config.database import db_instance
from backend.models.user import ROLES, User
from backend.routes.auth import auth_bp
from backend.routes.chat import chat_bp
from backend.routes.documents import documents_bp
from backend.routes.reports import reports_bp
from backend.services.gemini_client import GeminiAnswerGenerator
from backend.services.voyage_client import VoyageEmbeddingClient
from backend.utils.auth_middleware import load_user_from_request, unauthorized
from backend.utils.errors import APIError, ValidationError, error_response, success_response
from backend.utils.serialization import APIJSONProvider, utcnow

# Load environment variables
load_dotenv()

API_VERSION = '1.0.0'

logger = logging.getLogger(__name__)


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config(app):
    secret_key = os.getenv('SECRET_KEY', 'change-this-secret-key')
    app.config.update(
        ENVIRONMENT=os.getenv('FLASK_ENV', 'production'),
        SECRET_KEY=secret_key,
        JWT_SECRET=os.getenv('JWT_SECRET', secret_key),
        JWT_EXPIRES_DAYS=int(os.getenv('JWT_EXPIRES_DAYS', 7)),
        MONGODB_URI=os.getenv('MONGODB_URI', 'mongodb://localhost:27017/astu_campus_safety'),
        MONGODB_DB=os.getenv('MONGODB_DB', 'astu_campus_safety'),
        MONGO_CREATE_INDEXES=env_bool('MONGO_CREATE_INDEXES', True),
        FRONTEND_URL=os.getenv('FRONTEND_URL', 'http://localhost:3000'),
        GEMINI_API_KEY=os.getenv('GEMINI_API_KEY'),
        GEMINI_MODEL=os.getenv('GEMINI_MODEL', 'gemini-2.5-flash'),
        VOYAGE_API_KEY=os.getenv('VOYAGE_API_KEY'),
        VOYAGE_MODEL=os.getenv('VOYAGE_MODEL', 'voyage-2'),
        VOYAGE_TIMEOUT=float(os.getenv('VOYAGE_TIMEOUT', 30)),
        VECTOR_SEARCH_INDEX=os.getenv('VECTOR_SEARCH_INDEX') or None,
        CHUNK_SIZE=int(os.getenv('CHUNK_SIZE', 1000)),
        CHUNK_OVERLAP=int(os.getenv('CHUNK_OVERLAP', 200)),
        RAG_TOP_K=int(os.getenv('RAG_TOP_K', 3)),
        MIN_SIMILARITY=float(os.getenv('MIN_SIMILARITY', 0.3)),
        HISTORY_LIMIT=int(os.getenv('HISTORY_LIMIT', 10)),
        MAX_CONTENT_LENGTH=int(os.getenv('MAX_CONTENT_LENGTH', 10 * 1024 * 1024)),  # 10MB
        MAX_DOCUMENT_CHARS=int(os.getenv('MAX_DOCUMENT_CHARS', 50000)),
        ALLOW_PRIVILEGED_SIGNUP=env_bool('ALLOW_PRIVILEGED_SIGNUP', False),
        TESSERACT_CMD=os.getenv('TESSERACT_CMD'),
        LOG_LEVEL=os.getenv('LOG_LEVEL', 'INFO'),
    )


def create_app(test_config=None, mongo_client=None):
    """Application factory"""
    app = Flask(__name__)
    load_config(app)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    app.json = APIJSONProvider(app)

    # Initialize extensions
    CORS(app, origins=[app.config['FRONTEND_URL']], supports_credentials=True)
    db_instance.initialize(app, client=mongo_client)

    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = None
    login_manager.request_loader(load_user_from_request)
    login_manager.unauthorized_handler(unauthorized)

    app.extensions['embedding_client'] = VoyageEmbeddingClient(
        api_key=app.config['VOYAGE_API_KEY'],
        model=app.config['VOYAGE_MODEL'],
        timeout=app.config['VOYAGE_TIMEOUT']
    )
    app.extensions['answer_generator'] = GeminiAnswerGenerator(
        api_key=app.config['GEMINI_API_KEY'],
        model_name=app.config['GEMINI_MODEL']
    )

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(documents_bp, url_prefix='/api/chat')
    app.register_blueprint(chat_bp, url_prefix='/api/chat')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')

    if app.config['ENVIRONMENT'] == 'development':
        @app.before_request
        def log_request():
            logger.info("%s %s", request.method, request.path)

    @app.route('/')
    def index():
        return success_response(message='ASTU Smart Campus Safety API - Server is running',
                                data={'timestamp': utcnow(), 'version': API_VERSION})

    @app.route('/api/status')
    def status():
        return success_response({
            'status': 'operational',
            'database': 'connected' if db_instance.ping() else 'disconnected',
            'timestamp': utcnow()
        })

    register_error_handlers(app)
    register_commands(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def api_error(error):
        if isinstance(error, ValidationError):
            logger.info("Validation failed on %s: %s", request.path, error.errors)
        return error.to_response()

    @app.errorhandler(DuplicateKeyError)
    def duplicate_key(error):
        key_pattern = (error.details or {}).get('keyPattern') or {}
        field = next(iter(key_pattern), 'value')
        return error_response(f'{field} already exists', 400)

    @app.errorhandler(404)
    def not_found(error):
        return error_response(f'Route {request.path} not found', 404)

    @app.errorhandler(413)
    def file_too_large(error):
        max_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return error_response(f'File too large. Maximum size is {max_mb}MB.', 413)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return error_response(error.description or error.name, error.code)

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = 'Server Error'
        if app.config['ENVIRONMENT'] == 'development':
            message = f'Server Error: {error}'
        return error_response(message, 500)


def register_commands(app):
    @app.cli.command('create-user')
    @click.option('--name', prompt=True)
    @click.option('--email', prompt=True)
    @click.option('--role', type=click.Choice(ROLES), default='admin', show_default=True)
    @click.password_option()
    def create_user(name, email, role, password):
        """Create a user directly in the database (e.g. the first admin)"""
        if User.find_by_email(email):
            raise click.ClickException(f'User {email} already exists')
        try:
            user = User(email=email, name=name, role=role)
            user.set_password(password)
            user.save()
        except ValidationError as e:
            raise click.ClickException('; '.join(err['message'] for err in e.errors))
        click.echo(f'Created {user.role} {user.email} ({user.id})')


if __name__ == '__main__':
    app = create_app()

    if not app.config['GEMINI_API_KEY']:
        logger.warning("GEMINI_API_KEY not set. Chat answers will fail.")
    if not app.config['VOYAGE_API_KEY']:
        logger.warning("VOYAGE_API_KEY not set. Retrieval will use text search only.")

    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['ENVIRONMENT'] == 'development'
    )
