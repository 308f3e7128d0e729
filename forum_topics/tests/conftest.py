import os

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Load test environment variables from .env.test in the project root
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
dotenv_path = os.path.join(project_root, '.env.test')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)

from forum_topics.config.settings import settings as _app_settings
from forum_topics.models import Base
from forum_topics.utils.db_session import get_engine, get_session_factory


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory):
    """TEST_DATABASE_URL if set, otherwise a throwaway SQLite file."""
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{tmp_path_factory.mktemp('db') / 'forum_topics_test.db'}"


@pytest.fixture(scope="session")
def db_engine(test_database_url):
    """Point the application settings at the test database and yield its engine."""
    _app_settings.DATABASE_URL = test_database_url  # type: ignore
    get_engine.cache_clear()  # type: ignore[attr-defined]
    get_session_factory.cache_clear()  # type: ignore[attr-defined]

    engine = get_engine()
    yield engine
    engine.dispose()
    get_engine.cache_clear()  # type: ignore[attr-defined]
    get_session_factory.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture(scope="function")
def clean_database(db_engine):
    """Recreate every table before each test."""
    Base.metadata.drop_all(db_engine)
    Base.metadata.create_all(db_engine)
    yield db_engine


@pytest.fixture(scope="function")
def db_session(clean_database):
    """A session for arranging fixtures and inspecting results; operations under test open their own."""
    factory = sessionmaker(bind=clean_database, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope="function")
def forum(db_session):
    """Sections, groups and users every scenario starts from."""
    from forum_topics.tests.stubs.forum_data import seed_forum

    seed_forum(db_session)
    return db_session
