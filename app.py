import os
import click
from flask import Flask, current_app
from flask.cli import FlaskGroup, with_appcontext
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from models import Base
from credentials import SaltManager, issue_organizer
from errors import OrganizerError, ConfigurationError, PersistenceError

DEFAULT_DATABASE_TIMEOUT = 10  # seconds


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.update(
        DATABASE_URL=os.environ.get("DATABASE_URL"),
        DATABASE_TIMEOUT=os.environ.get("DATABASE_TIMEOUT", DEFAULT_DATABASE_TIMEOUT),
    )
    if test_config:
        app.config.update(test_config)

    app.cli.add_command(salt_command)
    app.cli.add_command(add_command)
    app.cli.add_command(init_db_command)
    return app


def database_timeout(config) -> float:
    raw = config.get("DATABASE_TIMEOUT", DEFAULT_DATABASE_TIMEOUT)
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"DATABASE_TIMEOUT must be a number of seconds, got {raw!r}")
    if timeout <= 0:
        raise ConfigurationError(f"DATABASE_TIMEOUT must be positive, got {raw!r}")
    return timeout


def build_engine(database_url, timeout):
    if not database_url:
        raise ConfigurationError("Failed to read environment variable DATABASE_URL: not set")
    try:
        url = make_url(database_url)
    except ArgumentError as e:
        raise ConfigurationError(f"Failed to parse DATABASE_URL: {e}") from e

    engine_args = {}
    backend = url.get_backend_name()
    if backend == "sqlite":
        engine_args["connect_args"] = {"timeout": timeout}
    else:
        engine_args["pool_timeout"] = timeout
        if backend == "postgresql":
            engine_args["connect_args"] = {
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            }

    try:
        return create_engine(url, future=True, **engine_args)
    except (ArgumentError, ImportError) as e:
        raise ConfigurationError(f"Failed to configure database engine for {url.drivername}: {e}") from e


def get_session_factory(app=None):
    """Session factory bound to the app's engine, created on first use."""
    app = app or current_app
    state = app.extensions.get("organizers")
    if state is None:
        engine = build_engine(app.config.get("DATABASE_URL"), database_timeout(app.config))
        state = app.extensions["organizers"] = {
            "engine": engine,
            "session_factory": sessionmaker(bind=engine, autoflush=False, future=True),
        }
    return state["session_factory"]


def init_db(app=None):
    app = app or current_app
    get_session_factory(app)
    try:
        Base.metadata.create_all(app.extensions["organizers"]["engine"])
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to create tables: {e}") from e


@click.command("salt", help="Generate a new database salt component")
@with_appcontext
def salt_command():
    try:
        manager = SaltManager(get_session_factory())
        manager.store(manager.generate())
    except OrganizerError as e:
        raise click.ClickException(str(e)) from e


@click.command("add", help="Add an organizer to the users table")
@click.option("-u", "--user", "email", required=True, help="Organizer email (login name)")
@click.option("-p", "--password", prompt=True, hide_input=True, confirmation_prompt=True,
              help="Plaintext password; prompted for when omitted")
@with_appcontext
def add_command(email, password):
    try:
        user_id = issue_organizer(get_session_factory(), email, password)
    except OrganizerError as e:
        raise click.ClickException(str(e)) from e
    current_app.logger.info("Organizer %s stored with id %s", email, user_id)


@click.command("init-db", help="Create the salts and users tables")
@with_appcontext
def init_db_command():
    try:
        init_db()
    except OrganizerError as e:
        raise click.ClickException(str(e)) from e


cli = FlaskGroup(create_app=create_app, add_default_commands=False,
                 help="Issue password credentials for organizer accounts.")


def main():
    cli()


if __name__ == "__main__":
    main()
