"""Database session management and transaction helpers.

Provides:
- Session factory
- transaction(): commit-or-rollback context manager for mutations
- TransactionContext: the immutable handle threaded through every call
  made while a workflow's transaction is open
- with_transaction(): run a unit of work inside one transaction
- nested(): SAVEPOINT recovery point inside the active transaction
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from quill.db.engine import get_engine
from quill.schemas.scope import Scope

T = TypeVar("T")


def create_session_factory(engine: Any = None) -> sessionmaker[Session]:
    """Create a session factory bound to an engine.

    Args:
        engine: SQLAlchemy engine. If None, uses the default engine.

    Returns:
        Configured sessionmaker instance.
    """
    if engine is None:
        engine = get_engine()

    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Context manager for database transactions.

    Commits on success, rolls back on exception.

    Args:
        db: The database session to manage.

    Raises:
        Re-raises any exception after rollback.

    Usage:
        with transaction(db):
            db.execute(...)
            db.execute(...)
        # Committed if no exception
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


@dataclass(frozen=True)
class TransactionContext:
    """Handle for one open transaction.

    Every store call made during a workflow receives the same instance.
    Frozen: nested calls share it by reference and never reassign fields.

    Attributes:
        db: Session whose transaction is open.
        scope: Caller identity and permission data.
    """

    db: Session
    scope: Scope


def with_transaction(db: Session, scope: Scope, work: Callable[[TransactionContext], T]) -> T:
    """Run work inside a single transaction and return its result.

    Commits when work returns, rolls back and re-raises when it raises.
    Nested calls made by work must reuse the TransactionContext they are
    given; none of them open a transaction of their own.

    Args:
        db: Database session.
        scope: Execution scope to thread through the unit of work.
        work: Callable receiving the transaction handle.

    Returns:
        Whatever work returns.
    """
    tx = TransactionContext(db=db, scope=scope)
    with transaction(db):
        return work(tx)


@contextmanager
def nested(tx: TransactionContext) -> Generator[None, None, None]:
    """SAVEPOINT inside the open transaction.

    On exception only the work since the savepoint is rolled back; the
    exception still propagates so the caller can decide how to recover.
    """
    with tx.db.begin_nested():
        yield
