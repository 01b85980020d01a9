import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from infinity_backend.api import app, get_api_key, get_session_factory
from infinity_backend.database import create_all_tables, make_engine
from infinity_backend.models import Player
from infinity_backend.players_db import PlayerRepository

TEST_API_KEY = "test-secret"


@pytest.fixture
def session_factory(tmp_path):
    """Sessions bound to a throwaway SQLite file with the schema in place."""
    engine = make_engine(f"sqlite:///{tmp_path / 'players.db'}")
    create_all_tables(bind=engine)
    factory = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    yield factory
    engine.dispose()


@pytest.fixture
def repo(session_factory):
    return PlayerRepository(session_factory)


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_api_key] = lambda: TEST_API_KEY
    # No `with`: startup would create tables in the default DATABASE_URL
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def contended_session_factory(session_factory):
    """Builds session factories whose first `conflicts` sessions lose to another writer.

    Right before such a session commits, a separate session bumps the player's
    games_played and commits, so the row's version no longer matches.
    """
    def build(player_id: str, conflicts: int):
        def write_from_elsewhere(_session):
            with session_factory() as other:
                row = other.get(Player, player_id)
                row.games_played += 1
                other.commit()

        opened = {"count": 0}

        def factory():
            session = session_factory()
            opened["count"] += 1
            if opened["count"] <= conflicts:
                event.listen(session, "before_commit", write_from_elsewhere, once=True)
            return session

        factory.opened = opened
        return factory

    return build
