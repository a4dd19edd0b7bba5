"""Account store service layer.

Lookups, status changes and removal of account rows. Every function runs
through the caller's TransactionContext and never commits on its own.

Status filtering:
- Default lookups match ACTIVE_STATES (active, inactive)
- Passing status=STATUS_ALL matches every status, including locked
- Destructive paths always pass STATUS_ALL so status never blocks removal
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.sql import Select

from quill.db.models import (
    ACTIVE_STATES,
    STATUS_ALL,
    Account,
    AccountSession,
    AccountStatus,
)
from quill.db.session import TransactionContext
from quill.errors import ApiErrorCode, NotFoundError
from quill.logging import get_logger

logger = get_logger(__name__)


def _filter_status(stmt: Select, status: str | Sequence[str] | None) -> Select:
    if status == STATUS_ALL:
        return stmt
    if status is None:
        return stmt.where(Account.status.in_(ACTIVE_STATES))
    if isinstance(status, str):
        return stmt.where(Account.status == status)
    return stmt.where(Account.status.in_(list(status)))


def find_accounts(
    tx: TransactionContext,
    status: str | Sequence[str] | None = None,
) -> list[Account]:
    """List accounts matching a status filter.

    Args:
        tx: Open transaction.
        status: Status, list of statuses, STATUS_ALL, or None for the
            default lookup statuses. Falls back to tx.scope.account_status.

    Returns:
        Accounts ordered by creation time.
    """
    if status is None:
        status = tx.scope.account_status
    stmt = _filter_status(select(Account), status).order_by(Account.created_at, Account.id)
    return list(tx.db.scalars(stmt).all())


def get_account(
    tx: TransactionContext,
    account_id: UUID,
    status: str | Sequence[str] | None = None,
) -> Account:
    """Fetch one account by id.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if no account matches id and status.
    """
    stmt = _filter_status(select(Account).where(Account.id == account_id), status)
    account = tx.db.scalars(stmt).first()
    if account is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, f"User {account_id} not found")
    return account


def get_owner(tx: TransactionContext) -> Account | None:
    """Return the site owner account, if there is one."""
    return tx.db.scalars(select(Account).where(Account.is_owner.is_(True))).first()


def lock_account(tx: TransactionContext, account: Account) -> None:
    """Disable sign-in for an account until its password is reset."""
    account.status = AccountStatus.locked.value
    tx.db.flush()

    logger.info("account_locked", account_id=str(account.id))


def destroy_account_row(
    tx: TransactionContext,
    account_id: UUID,
    status: str | Sequence[str] | None = STATUS_ALL,
) -> None:
    """Delete an account row and the sessions that belong to it.

    Dependent content (authorship, revisions, API keys) must already be
    resolved; the foreign keys reject the delete otherwise.

    Args:
        tx: Open transaction.
        account_id: Account to remove.
        status: Status filter; STATUS_ALL by default so locked accounts
            are removable.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if no account matches.
    """
    account = get_account(tx, account_id, status=status)

    tx.db.execute(delete(AccountSession).where(AccountSession.user_id == account.id))
    tx.db.delete(account)
    tx.db.flush()

    logger.info("account_row_destroyed", account_id=str(account_id))
