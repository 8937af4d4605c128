import json
import logging

import click
from flask import Flask
from config import Config

NOISY_LOGGERS = ('urllib3', 'httpx', 'openai', 'apscheduler.executors.default')


def _normalize_database_uri(app):
    # Hosted Postgres often hands out postgres://, which SQLAlchemy 2 rejects
    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if db_uri.startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = db_uri.replace('postgres://', 'postgresql://', 1)


def _check_interval(app):
    from doom_index.errors import ConfigurationError
    interval = app.config.get('GENERATION_INTERVAL_MINUTES', 60)
    if not isinstance(interval, int) or interval < 1 or 1440 % interval:
        raise ConfigurationError(
            f"GENERATION_INTERVAL_MINUTES must divide a day evenly, got {interval!r}",
            missing_var='GENERATION_INTERVAL_MINUTES',
        )


def _check_prompt_weights(app):
    from doom_index.errors import ConfigurationError
    exponent = app.config.get('PROMPT_EXPONENT', 2.0)
    if exponent <= 0:
        raise ConfigurationError(f"PROMPT_EXPONENT must be positive, got {exponent!r}",
                                 missing_var='PROMPT_EXPONENT')
    if app.config.get('PROMPT_MIN_WEIGHT', 0.75) > app.config.get('PROMPT_MAX_WEIGHT', 1.5):
        raise ConfigurationError('PROMPT_MIN_WEIGHT must not exceed PROMPT_MAX_WEIGHT',
                                 missing_var='PROMPT_MIN_WEIGHT')


def _configure_logging(app):
    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _register_commands(app):
    @app.cli.command('generate')
    @click.option('--create-tables', is_flag=True, help='Create missing tables first.')
    def generate_command(create_tables):
        """Run one generation cycle for the current bucket."""
        from doom_index.extensions import db
        from doom_index.services.container import run_generation_once
        if create_tables:
            db.create_all()
        result = run_generation_once()
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        if result.status == 'failed':
            raise SystemExit(1)


def create_app(config_class=None):
    app = Flask(__name__)
    app.config.from_object(config_class or Config)

    _normalize_database_uri(app)
    _check_interval(app)
    _check_prompt_weights(app)
    _configure_logging(app)

    from doom_index.extensions import db, migrate, scheduler
    from doom_index import models  # noqa: F401  (register tables)
    db.init_app(app)
    migrate.init_app(app, db)

    from doom_index import feature_flags
    feature_flags.init_flags()

    from doom_index.routes import register_blueprints
    register_blueprints(app)
    _register_commands(app)

    if app.config.get('SCHEDULER_ENABLED') and not app.config.get('TESTING'):
        scheduler.init_app(app)
        with app.app_context():
            from doom_index.jobs.scheduled import register_jobs
            register_jobs(scheduler, app)
        scheduler.start()

    return app
