from datetime import timedelta

import click
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from config import Config
from database import init_db, make_engine, make_session_factory
from errors import AuthenticationFailed, Conflict, DomainError, Forbidden, InvalidInput, NotFound, Unavailable
from routes.auth import auth_bp
from routes.booking import booking_bp
from routes.profile import profile_bp
from routes.properties import properties_bp
from routes.reviews import reviews_bp
from services.booking_service import BookingService
from services.property_service import PropertyService
from services.review_service import ReviewService
from services.user_service import UserService
from utils.cache import NullCache, RedisCache
from utils.logger import get_logger, init_logger


STATUS_CODES = {
    NotFound: 404,
    Forbidden: 403,
    Conflict: 409,
    InvalidInput: 400,
    Unavailable: 503,
    AuthenticationFailed: 401,
}


def _status_code(error):
    for kind, code in STATUS_CODES.items():
        if isinstance(error, kind):
            return code
    return 500


def create_app(config_object=Config, session_factory=None, cache=None, clock=None):
    """
    Builds the Flask app: config, JWT, CORS, logging, the database, the
    services and the blueprints. Tests pass their own config, session
    factory, cache and clock.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=config_object.JWT_ACCESS_TOKEN_HOURS)
    app.config['JWT_REFRESH_TOKEN_EXPIRES'] = timedelta(hours=config_object.JWT_REFRESH_TOKEN_HOURS)

    CORS(app, resources={r"/*": {"origins": config_object.ALLOWED_ORIGINS}},
         supports_credentials=False,
         methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "DELETE"],
         allow_headers=["Content-Type", "Accept", "Authorization"])

    JWTManager(app)
    logger = init_logger(config_object.LOG_LEVEL, config_object.LOG_DIR)

    if session_factory is None:
        engine = make_engine(config_object.SQLALCHEMY_DATABASE_URI, echo=config_object.SQLALCHEMY_ECHO)
        init_db(engine)
        session_factory = make_session_factory(engine)

    if cache is None:
        if config_object.REDIS_URL:
            cache = RedisCache.from_url(config_object.REDIS_URL, ttl=config_object.PROPERTY_CACHE_TTL,
                                        logger=get_logger('cache'))
        else:
            cache = NullCache()

    app.extensions['stayhub'] = {
        'users': UserService(session_factory, logger=get_logger('users')),
        'properties': PropertyService(session_factory, cache=cache, logger=get_logger('properties')),
        'bookings': BookingService(session_factory, logger=get_logger('bookings'), clock=clock),
        'reviews': ReviewService(session_factory, logger=get_logger('reviews')),
    }

    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(properties_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(reviews_bp)

    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        code = _status_code(error)
        if code >= 500:
            logger.error('request failed: %s', error.message)
        return jsonify({'error': error.message}), code

    @app.route('/health')
    def health():
        return jsonify({"status": "StayHub is running"}), 200

    @app.cli.command('init-db')
    def init_db_command():
        """ Creates the tables. """
        init_db(make_engine(config_object.SQLALCHEMY_DATABASE_URI))
        click.echo('Database initialized')

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option('--first-name', prompt=True)
    @click.option('--last-name', prompt=True)
    def create_admin_command(email, password, first_name, last_name):
        """ Creates an admin account; admins cannot register through the API. """
        try:
            user = app.extensions['stayhub']['users'].register({
                'email': email,
                'password': password,
                'first_name': first_name,
                'last_name': last_name,
                'role': 'admin',
            }, allow_admin=True)
        except DomainError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"Admin {user['email']} created with id {user['id']}")

    return app


if __name__ == '__main__':
    create_app().run()
