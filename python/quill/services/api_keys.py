"""Account API key service layer.

API keys belong to exactly one account and are removed before the account
itself. Key secrets are never logged.
"""

from uuid import UUID

from sqlalchemy import delete, select

from quill.db.models import ApiKey
from quill.db.session import TransactionContext
from quill.errors import ApiErrorCode, NotFoundError
from quill.logging import get_logger

logger = get_logger(__name__)


def list_account_keys(tx: TransactionContext, account_id: UUID) -> list[ApiKey]:
    """List an account's API keys, oldest first."""
    stmt = (
        select(ApiKey)
        .where(ApiKey.user_id == account_id)
        .order_by(ApiKey.created_at, ApiKey.id)
    )
    return list(tx.db.scalars(stmt).all())


def destroy_account_api_keys(
    tx: TransactionContext,
    account_id: UUID,
    require: bool = False,
) -> int:
    """Delete every API key owned by an account.

    Args:
        tx: Open transaction.
        account_id: Owning account.
        require: If True, deleting nothing is an error.

    Returns:
        Number of keys deleted.

    Raises:
        NotFoundError: E_API_KEY_NOT_FOUND if require is set and the account
            owns no keys.
    """
    result = tx.db.execute(
        delete(ApiKey)
        .where(ApiKey.user_id == account_id)
        .execution_options(synchronize_session="fetch")
    )
    deleted = result.rowcount or 0

    if require and deleted == 0:
        raise NotFoundError(
            ApiErrorCode.E_API_KEY_NOT_FOUND,
            f"No API keys found for user {account_id}",
        )

    logger.info("account_api_keys_destroyed", account_id=str(account_id), deleted=deleted)
    return deleted
