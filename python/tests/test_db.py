"""Tests for the session and transaction helpers.

Verifies:
- transaction() commits on success and rolls back on error
- with_transaction() threads one TransactionContext through the work
- nested() rolls back to its savepoint without ending the transaction
- SQLite connections enforce foreign keys
- create_session_factory() defaults to the settings engine
"""

import dataclasses

import pytest
from sqlalchemy.exc import IntegrityError

from quill.db.engine import get_engine
from quill.db.models import Account, ApiKey, Tag
from quill.db.session import (
    TransactionContext,
    create_session_factory,
    nested,
    transaction,
    with_transaction,
)
from tests.factories import create_test_account


class TestTransaction:
    """Tests for the transaction() context manager."""

    def test_commits_on_success(self, db_session, direct_db):
        with transaction(db_session):
            db_session.add(Tag(slug="news", name="News"))

        assert direct_db.count(Tag, Tag.slug == "news") == 1

    def test_rolls_back_on_error(self, db_session, direct_db):
        with pytest.raises(RuntimeError):
            with transaction(db_session):
                db_session.add(Tag(slug="news", name="News"))
                db_session.flush()
                raise RuntimeError("boom")

        assert direct_db.count(Tag) == 0


class TestWithTransaction:
    """Tests for with_transaction()."""

    def test_returns_work_result(self, db_session, scope):
        assert with_transaction(db_session, scope, lambda tx: 42) == 42

    def test_work_receives_scope_and_session(self, db_session, scope):
        seen: list[TransactionContext] = []
        with_transaction(db_session, scope, seen.append)

        assert seen[0].db is db_session
        assert seen[0].scope == scope

    def test_nested_calls_share_the_handle(self, db_session, scope):
        """Helpers called from the work get the very same instance."""
        handles: list[TransactionContext] = []

        def helper(tx: TransactionContext) -> None:
            handles.append(tx)

        def work(tx: TransactionContext) -> None:
            handles.append(tx)
            helper(tx)
            helper(tx)

        with_transaction(db_session, scope, work)

        assert len(handles) == 3
        assert all(handle is handles[0] for handle in handles)

    def test_handle_is_immutable(self, db_session, scope):
        def work(tx: TransactionContext) -> None:
            tx.scope = None

        with pytest.raises(dataclasses.FrozenInstanceError):
            with_transaction(db_session, scope, work)

    def test_error_discards_all_writes(self, db_session, scope, direct_db):
        def work(tx: TransactionContext) -> None:
            tx.db.add(Tag(slug="a", name="A"))
            tx.db.flush()
            tx.db.add(Tag(slug="b", name="B"))
            tx.db.flush()
            raise ValueError("late failure")

        with pytest.raises(ValueError, match="late failure"):
            with_transaction(db_session, scope, work)

        assert direct_db.count(Tag) == 0


class TestNested:
    """Tests for nested() savepoints."""

    def test_savepoint_rollback_keeps_outer_work(self, db_session, scope, direct_db):
        def work(tx: TransactionContext) -> None:
            tx.db.add(Tag(slug="kept", name="Kept"))
            tx.db.flush()
            with pytest.raises(IntegrityError):
                with nested(tx):
                    tx.db.add(Tag(slug="kept", name="Duplicate"))
                    tx.db.flush()
            tx.db.add(Tag(slug="after", name="After"))
            tx.db.flush()

        with_transaction(db_session, scope, work)

        assert direct_db.count(Tag) == 2


class TestSqliteForeignKeys:
    """The test engine enforces foreign keys like PostgreSQL does."""

    def test_orphan_api_key_rejected(self, db_session):
        account = create_test_account(db_session)
        db_session.add(ApiKey(user_id=account.id, secret="s"))
        db_session.commit()

        db_session.delete(db_session.get(Account, account.id))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestSessionFactory:
    """create_session_factory() falls back to the engine built from settings."""

    def test_default_engine_from_settings(self):
        get_engine.cache_clear()
        try:
            session_factory = create_session_factory()
            with session_factory() as session:
                assert session.get_bind() is get_engine()
                assert session.get_bind().dialect.name == "sqlite"
        finally:
            get_engine().dispose()
            get_engine.cache_clear()
