import pytest

from app import create_app, init_db, get_session_factory


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "DATABASE_URL": f"sqlite:///{tmp_path / 'organizers.db'}",
    })
    init_db(app)
    yield app
    app.extensions["organizers"]["engine"].dispose()


@pytest.fixture
def session_factory(app):
    return get_session_factory(app)


@pytest.fixture
def runner(app):
    return app.test_cli_runner()
