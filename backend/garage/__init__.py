# backend/garage/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.clients import clients_bp
    from .routes.cars import cars_bp
    from .routes.insurance import insurance_bp
    from .routes.services import services_bp
    from .routes.suppliers import suppliers_bp
    from .routes.products import products_bp
    from .routes.maintenance import maintenance_bp
    from .routes.employees import employees_bp
    from .routes.finance import finance_bp
    from .routes.logs import logs_bp
    from .routes.backup import backup_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(cars_bp)
    app.register_blueprint(insurance_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(maintenance_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(finance_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(backup_bp)

    # Acting identity for audit entries (X-Actor header or SYSTEM_ACTOR)
    from .decorators import load_actor
    app.before_request(load_actor)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
