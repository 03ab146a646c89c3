import logging

from flask import Flask
from pillbox.models import db
from pillbox.config import Config
from flask_migrate import Migrate

migrate = Migrate()


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('pillbox').setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize database
    db.init_app(app)

    # Initialize Flask-Migrate
    migrate.init_app(app, db)

    # Register blueprints
    from pillbox.api.routes import api_bp
    app.register_blueprint(api_bp)

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from pillbox.models.user import User, Member
        from pillbox.models.pill import Pill, PillRule
        from pillbox.models.schedule import Schedule
        db.create_all()

    return app
