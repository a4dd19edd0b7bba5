"""Pytest configuration and fixtures for Quill tests.

Test isolation strategy:
- Each test gets a fresh SQLite database file under tmp_path
- db_session is the session workflows run through; they commit for real
- direct_db opens independent sessions to check what was committed
- Collaborators (backup, tokens, mail) are fakes from tests.fakes
"""

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from quill.config import Settings, clear_settings_cache
from quill.logging import clear_request_context
from quill.schemas.scope import Scope
from quill.services.users import AccountLifecycle
from tests.factories import create_test_account
from tests.fakes import FakeBackupGateway, FakeTokenGenerator, RecordingNotifier
from tests.utils.db import DirectSessionManager, TestDatabaseManager, create_test_engine


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point settings at a throwaway database; reset cached settings and log context."""
    monkeypatch.setenv("QUILL_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.delenv("RESET_TOKEN_SECRET", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
    clear_request_context()


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Create an engine on a per-test SQLite database with the schema applied."""
    engine = create_test_engine(tmp_path)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide the session workflows under test run through."""
    with TestDatabaseManager(engine) as session:
        yield session


@pytest.fixture
def direct_db(engine: Engine) -> DirectSessionManager:
    """Provide independent sessions for checking committed state."""
    return DirectSessionManager(engine)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings for tests: small batches so keyset pagination is exercised."""
    return Settings(
        QUILL_ENV="test",
        DATABASE_URL="sqlite://",
        BACKUP_DIR=str(tmp_path / "backups"),
        AUTHORED_IDS_BATCH_SIZE=2,
    )


@pytest.fixture
def scope() -> Scope:
    """Internal scope with a fixed request id."""
    return Scope.internal(request_id="req-test")


@pytest.fixture
def owner(db_session: Session):
    """The site owner, who receives posts left without an author."""
    return create_test_account(db_session, slug="owner", is_owner=True)


@pytest.fixture
def backup_gateway(tmp_path: Path) -> FakeBackupGateway:
    """Backup gateway that writes an empty marker file."""
    return FakeBackupGateway(tmp_path / "backups")


@pytest.fixture
def token_generator() -> FakeTokenGenerator:
    """Deterministic token generator."""
    return FakeTokenGenerator()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records what it was asked to send."""
    return RecordingNotifier()


@pytest.fixture
def lifecycle(
    settings: Settings,
    backup_gateway: FakeBackupGateway,
    token_generator: FakeTokenGenerator,
    notifier: RecordingNotifier,
) -> AccountLifecycle:
    """AccountLifecycle wired to fakes and the default revision scrubber."""
    return AccountLifecycle(
        backup_gateway=backup_gateway,
        token_generator=token_generator,
        notifier=notifier,
        settings=settings,
    )
