"""Account lifecycle orchestration.

AccountLifecycle wires the destructive account workflows to their
collaborators:

destroy_account():
1. Backup (outside the transaction, never rolled back)
2. In one transaction, strictly in this order:
   a. Remove the account from its post revisions
   b. Tag its posts with the account's marker tag
   c. Reassign its posts to the fallback author
   d. Destroy its API keys (having none is fine)
   e. Destroy the account row, whatever its status
3. Return the backup locator

Tagging must see the original authorship join, so it runs before
reassignment; the account row goes last because everything above
references it. Any failure other than "no API keys" rolls the whole
transaction back and leaves the backup on disk.

reset_all_passwords(): see quill.services.passwords.
"""

from collections.abc import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from quill.config import Settings, get_settings
from quill.db.models import STATUS_ALL, Account, Tag
from quill.db.session import TransactionContext, with_transaction
from quill.errors import ApiErrorCode, ForbiddenError, NotFoundError
from quill.logging import bind_workflow_context, clear_workflow_context, get_logger
from quill.schemas.accounts import DestroyAccountRequest
from quill.schemas.scope import Scope
from quill.services import passwords
from quill.services.accounts import destroy_account_row, get_account, get_owner
from quill.services.api_keys import destroy_account_api_keys
from quill.services.backup import BackupGateway, backup_locator
from quill.services.passwords import ResetNotifier, ResetTokenGenerator
from quill.services.posts import reassign_posts_by_author
from quill.services.revisions import PostRevisions, RevisionConfig, RevisionScrubber
from quill.services.tags import assign_marker_tag

logger = get_logger(__name__)

# Picks the account that takes over posts whose sole author is being removed
FallbackAuthorResolver = Callable[[TransactionContext, Account], Account]


def owner_fallback_author(tx: TransactionContext, account: Account) -> Account:
    """Hand orphaned posts to the site owner.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if the site has no owner.
        ForbiddenError: E_OWNER_UNDELETABLE if account is the owner.
    """
    owner = get_owner(tx)
    if owner is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "Owner user not found")
    if owner.id == account.id:
        raise ForbiddenError(ApiErrorCode.E_OWNER_UNDELETABLE, "The owner cannot be destroyed")
    return owner


class AccountLifecycle:
    """Destructive account workflows and their collaborators.

    Args:
        backup_gateway: Snapshot taken before destroy_account mutates anything.
        token_generator: Mints password reset tokens.
        notifier: Dispatches password reset notifications.
        settings: Application settings. Defaults to get_settings().
        revision_scrubber: Defaults to PostRevisions with the configured policy.
        fallback_author: Defaults to owner_fallback_author.
    """

    def __init__(
        self,
        backup_gateway: BackupGateway,
        token_generator: ResetTokenGenerator,
        notifier: ResetNotifier,
        settings: Settings | None = None,
        revision_scrubber: RevisionScrubber | None = None,
        fallback_author: FallbackAuthorResolver = owner_fallback_author,
    ):
        self.settings = settings or get_settings()
        self.backup_gateway = backup_gateway
        self.token_generator = token_generator
        self.notifier = notifier
        self.revision_scrubber = revision_scrubber or PostRevisions(
            RevisionConfig(**self.settings.revision_config)
        )
        self.fallback_author = fallback_author

    def reset_all_passwords(self, db: Session, scope: Scope) -> int:
        """Lock every account in scope and send each a password reset."""
        return passwords.reset_all_passwords(
            db,
            scope,
            token_generator=self.token_generator,
            notifier=self.notifier,
            reset_settings=self.settings.reset_settings,
            mail_settings=self.settings.mail_settings,
        )

    def assign_marker_tag(self, db: Session, account_id: UUID, scope: Scope) -> Tag:
        """Tag the account's posts with its marker tag in a transaction of its own."""
        return with_transaction(
            db,
            scope,
            lambda tx: assign_marker_tag(
                tx, account_id, batch_size=self.settings.authored_ids_batch_size
            ),
        )

    def destroy_account(self, db: Session, request: DestroyAccountRequest) -> str:
        """Destroy an account after backing the store up.

        Args:
            db: Database session.
            request: Account to destroy and the execution scope.

        Returns:
            Locator (file name) of the backup taken before destruction.

        Raises:
            BackupError: The backup failed; nothing was changed.
            NotFoundError: The account doesn't exist.
            ForbiddenError: The account is the site owner.
            Anything a step raises, after rolling back.
        """
        scope = request.scope
        account_id = request.account_id
        tokens = bind_workflow_context(
            "destroy_account",
            actor_id=str(scope.actor_id) if scope.actor_id else None,
            request_id=scope.request_id,
        )
        try:
            logger.info("account_destroy_started", account_id=str(account_id))

            locator = backup_locator(self.backup_gateway.backup())
            logger.info("account_backup_created", account_id=str(account_id), backup=locator)

            try:
                with_transaction(db, scope, lambda tx: self._destroy(tx, account_id))
            except Exception as exc:
                logger.warning(
                    "account_destroy_aborted",
                    account_id=str(account_id),
                    backup=locator,
                    error_type=type(exc).__name__,
                )
                raise

            logger.info("account_destroyed", account_id=str(account_id), backup=locator)
            return locator
        finally:
            clear_workflow_context(tokens)

    def _destroy(self, tx: TransactionContext, account_id: UUID) -> None:
        batch_size = self.settings.authored_ids_batch_size

        account = get_account(tx, account_id, status=STATUS_ALL)
        if account.is_owner:
            raise ForbiddenError(ApiErrorCode.E_OWNER_UNDELETABLE, "The owner cannot be destroyed")

        self.revision_scrubber.remove_author_from_revisions(account.id, tx)

        assign_marker_tag(tx, account.id, batch_size=batch_size)

        fallback = self.fallback_author(tx, account)
        reassign_posts_by_author(tx, account.id, fallback, batch_size=batch_size)

        try:
            destroy_account_api_keys(tx, account.id, require=True)
        except NotFoundError as exc:
            if exc.code is not ApiErrorCode.E_API_KEY_NOT_FOUND:
                raise
            logger.info("account_has_no_api_keys", account_id=str(account.id))

        destroy_account_row(tx, account.id, status=STATUS_ALL)
