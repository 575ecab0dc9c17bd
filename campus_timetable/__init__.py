"""Campus Timetable - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from campus_timetable.services.events import EventBus

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)
event_bus = EventBus()

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    event_bus.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Notification dispatch after each request
    setup_notifications(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Timetable',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from campus_timetable.api.timetable import timetable_bp
    from campus_timetable.api.venues import venues_bp
    from campus_timetable.api.attendance import attendance_bp

    app.register_blueprint(timetable_bp, url_prefix='/api/timetable')
    app.register_blueprint(venues_bp, url_prefix='/api/venues')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from campus_timetable.utils.helpers import handle_error, error_response
    from campus_timetable.utils.errors import (
        NotFoundError, VenueConflictError, ImportRejectedError
    )
    from campus_timetable.utils.validators import ValidationError
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(400)
    def bad_request(error):
        return handle_error(error, 400)

    @app.errorhandler(401)
    def unauthorized(error):
        return handle_error(error, 401)

    @app.errorhandler(403)
    def forbidden(error):
        return handle_error(error, 403)

    @app.errorhandler(404)
    def not_found(error):
        return handle_error(error, 404)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error(error, 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        db.session.rollback()
        return error_response(str(e), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        db.session.rollback()
        return error_response(str(e), 404)

    @app.errorhandler(ImportRejectedError)
    def handle_import_rejected(e):
        db.session.rollback()
        return error_response(str(e), 400, errors=e.warnings)

    @app.errorhandler(VenueConflictError)
    def handle_venue_conflict(e):
        db.session.rollback()
        return error_response(
            str(e), 409,
            conflict=e.conflicting_entry.to_dict(),
            suggestions=[venue.to_dict() for venue in e.suggestions]
        )

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'error': True,
            'message': 'Token has expired',
            'status_code': 401
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Invalid token',
            'status_code': 401
        }), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Authorization token required',
            'status_code': 401
        }), 401

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    if not app.debug and not app.testing:
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/app.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger('campus_timetable').addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Campus Timetable startup')

    logging.getLogger('campus_timetable').setLevel(app.config.get('LOG_LEVEL', 'INFO'))

def setup_database(app: Flask) -> None:
    """Setup database connections."""
    with app.app_context():
        # Import all models so metadata is complete
        from campus_timetable.models import (
            User, UserRole, Course, Venue,
            TimetableEntry, AttendanceRecord, ScheduleLock,
            Announcement, Notification
        )

def setup_notifications(app: Flask) -> None:
    """Drain queued events once the response is ready."""
    from campus_timetable.services.notification_service import NotificationDispatcher

    @app.after_request
    def dispatch_pending_events(response):
        if not app.config.get('NOTIFICATIONS_INLINE') or not event_bus.has_pending():
            return response
        try:
            NotificationDispatcher(event_bus).dispatch_pending()
        except Exception:
            db.session.rollback()
            app.logger.exception('Inline notification dispatch failed')
        return response

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click
    import time

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

        from campus_timetable.models.user import User, UserRole

        admin = User.query.filter_by(email='admin@campus.edu').first()
        if not admin:
            admin = User(
                email='admin@campus.edu',
                name='System Administrator',
                role=UserRole.ADMIN
            )
            admin.set_password(os.getenv('ADMIN_PASSWORD', 'admin123456'))
            db.session.add(admin)
            db.session.commit()
            click.echo('Created admin user: admin@campus.edu')

    @app.cli.command('seed-db')
    def seed_db():
        """Seed database with test data."""
        from campus_timetable.services.seed_service import SeedService

        SeedService.seed_all()
        click.echo('Database seeded successfully!')

    @app.cli.command('dispatch-notifications')
    @click.option('--watch', is_flag=True, help='Keep polling the event queue')
    @click.option('--interval', default=2.0, help='Seconds between polls')
    def dispatch_notifications(watch, interval):
        """Consume queued timetable events."""
        from campus_timetable.services.notification_service import NotificationDispatcher

        dispatcher = NotificationDispatcher(event_bus)
        while True:
            handled = dispatcher.dispatch_pending()
            if handled:
                click.echo(f'Dispatched {handled} events.')
            if not watch:
                break
            time.sleep(interval)

    @app.cli.command('archive-timetable')
    def archive_timetable():
        """Archive timetable entries whose week has passed."""
        from campus_timetable.services.timetable_service import TimetableService

        archived = TimetableService.archive_past_entries()
        click.echo(f'Archived {archived} timetable entries.')
