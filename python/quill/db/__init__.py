"""Database module for Quill.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from quill.db.engine import create_db_engine, get_engine
from quill.db.models import (
    ACTIVE_STATES,
    STATUS_ALL,
    Account,
    AccountSession,
    AccountStatus,
    ApiKey,
    ApiKeyType,
    Base,
    Post,
    PostAuthor,
    PostRevision,
    PostStatus,
    PostTag,
    Tag,
    TagVisibility,
)
from quill.db.session import (
    TransactionContext,
    nested,
    transaction,
    with_transaction,
)

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "transaction",
    "with_transaction",
    "nested",
    "TransactionContext",
    # Base
    "Base",
    # Enums and filters
    "AccountStatus",
    "PostStatus",
    "TagVisibility",
    "ApiKeyType",
    "STATUS_ALL",
    "ACTIVE_STATES",
    # Models
    "Account",
    "Post",
    "Tag",
    "PostTag",
    "PostAuthor",
    "ApiKey",
    "AccountSession",
    "PostRevision",
]
