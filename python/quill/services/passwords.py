"""Password reset workflow.

reset_all_passwords() invalidates every account's credentials in one
transaction:
1. Fetch the accounts matching the scope
2. Lock every account (first pass, before any mail goes out)
3. Generate a reset token per account and dispatch its notification

Any failure in step 3 rolls back the whole batch: no account stays locked
without the rest of the batch, and no partial reset is committed. There are
no retries; the caller re-invokes.

Reset tokens (JwtResetTokenGenerator):
- HS256 signed with RESET_TOKEN_SECRET
- Claims: iss=quill-reset, sub=account id, email, iat, exp, pwd
- pwd is a digest of the password hash at issue time, so a token stops
  verifying once the password has been changed (single use)
"""

import hashlib
import time
from typing import Any, Protocol
from uuid import UUID

import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from quill.db.models import STATUS_ALL, Account
from quill.db.session import TransactionContext, with_transaction
from quill.errors import ApiErrorCode, InvalidRequestError, NotFoundError, TokenGenerationError
from quill.logging import bind_workflow_context, clear_workflow_context, get_logger
from quill.schemas.scope import Scope
from quill.services.accounts import find_accounts, get_account, lock_account

logger = get_logger(__name__)

RESET_TOKEN_ISSUER = "quill-reset"
RESET_TOKEN_ALGORITHM = "HS256"


class ResetTokenGenerator(Protocol):
    """Protocol for minting password reset tokens."""

    def generate_token(self, email: str, settings: dict[str, Any], tx: TransactionContext) -> str:
        """Return a single-use reset token for the account with this email.

        Reads through tx so it sees the workflow's uncommitted state.
        """
        ...


class ResetNotifier(Protocol):
    """Protocol for dispatching password reset notifications."""

    def send_reset_notification(self, token: str, mail_settings: dict[str, Any]) -> None:
        """Deliver the reset link carrying token.

        Raises:
            NotificationError: Delivery failed.
        """
        ...


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a password hash, embedded in reset tokens."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


class JwtResetTokenGenerator:
    """Default reset token generator using PyJWT."""

    def generate_token(self, email: str, settings: dict[str, Any], tx: TransactionContext) -> str:
        account = tx.db.scalars(select(Account).where(Account.email == email)).first()
        if account is None:
            raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

        secret = settings.get("secret")
        if not secret:
            raise TokenGenerationError("Reset token secret is not configured")

        now = int(time.time())
        payload = {
            "iss": RESET_TOKEN_ISSUER,
            "sub": str(account.id),
            "email": email,
            "iat": now,
            "exp": now + int(settings["ttl_s"]),
            "pwd": password_fingerprint(account.password_hash),
        }
        return jwt.encode(payload, secret, algorithm=RESET_TOKEN_ALGORITHM)


def verify_reset_token(tx: TransactionContext, token: str, settings: dict[str, Any]) -> Account:
    """Verify a reset token and return the account it was issued for.

    Raises:
        InvalidRequestError: E_RESET_TOKEN_EXPIRED if the token has expired.
        InvalidRequestError: E_RESET_TOKEN_INVALID if the signature, claims
            or password fingerprint don't check out.
    """
    try:
        payload = jwt.decode(
            token,
            settings["secret"],
            algorithms=[RESET_TOKEN_ALGORITHM],
            issuer=RESET_TOKEN_ISSUER,
            options={"require": ["exp", "iss", "sub", "email", "pwd"]},
        )
    except jwt.ExpiredSignatureError as err:
        raise InvalidRequestError(
            ApiErrorCode.E_RESET_TOKEN_EXPIRED, "Reset token has expired"
        ) from err
    except jwt.InvalidTokenError as err:
        logger.warning("reset_token_invalid", error=str(err))
        raise InvalidRequestError(
            ApiErrorCode.E_RESET_TOKEN_INVALID, "Invalid reset token"
        ) from err

    try:
        account = get_account(tx, UUID(payload["sub"]), status=STATUS_ALL)
    except (ValueError, NotFoundError) as err:
        raise InvalidRequestError(
            ApiErrorCode.E_RESET_TOKEN_INVALID, "Invalid reset token"
        ) from err

    if account.email != payload["email"]:
        raise InvalidRequestError(ApiErrorCode.E_RESET_TOKEN_INVALID, "Invalid reset token")
    if password_fingerprint(account.password_hash) != payload["pwd"]:
        # Password already changed since the token was issued
        raise InvalidRequestError(ApiErrorCode.E_RESET_TOKEN_INVALID, "Reset token already used")

    return account


def reset_all_passwords(
    db: Session,
    scope: Scope,
    token_generator: ResetTokenGenerator,
    notifier: ResetNotifier,
    reset_settings: dict[str, Any],
    mail_settings: dict[str, Any],
) -> int:
    """Lock every account in scope and send each a password reset.

    Args:
        db: Database session.
        scope: Execution scope; scope.account_status narrows the accounts,
            every status is matched when it is unset.
        token_generator: Mints one token per account inside the transaction.
        notifier: Dispatches the reset notification.
        reset_settings: Passed through to token_generator.
        mail_settings: Passed through to notifier.

    Returns:
        Number of accounts reset.

    Raises:
        Whatever token_generator or notifier raise, after rolling back.
    """

    def work(tx: TransactionContext) -> int:
        accounts = find_accounts(tx, status=scope.account_status or STATUS_ALL)

        # Every account is locked before the first reset link goes out
        for account in accounts:
            lock_account(tx, account)

        for account in accounts:
            token = token_generator.generate_token(account.email, reset_settings, tx)
            notifier.send_reset_notification(token, mail_settings)
            logger.info("password_reset_sent", account_id=str(account.id))

        return len(accounts)

    tokens = bind_workflow_context(
        "reset_all_passwords",
        actor_id=str(scope.actor_id) if scope.actor_id else None,
        request_id=scope.request_id,
    )
    try:
        try:
            count = with_transaction(db, scope, work)
        except Exception as exc:
            logger.warning("password_reset_aborted", error_type=type(exc).__name__)
            raise

        logger.info("password_reset_completed", accounts=count)
        return count
    finally:
        clear_workflow_context(tokens)
