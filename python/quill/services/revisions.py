"""Post revision service.

Provides:
- RevisionScrubber: Protocol the account destruction workflow calls
- RevisionConfig: retention policy (max revisions per post, min interval)
- PostRevisions: default scrubber, plus retention pruning

Revisions outlive the accounts that wrote them: removing an account only
clears author_id on its revisions, the snapshots themselves stay.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select, update

from quill.db.models import PostRevision
from quill.db.session import TransactionContext
from quill.logging import get_logger

logger = get_logger(__name__)

POST_REVISIONS_COUNT = 25
POST_REVISIONS_INTERVAL_MS = 10 * 60 * 1000  # 10 minutes


class RevisionScrubber(Protocol):
    """Protocol for anonymizing an account's post revisions."""

    def remove_author_from_revisions(self, account_id: UUID, tx: TransactionContext) -> None:
        """Detach the account from every revision it authored.

        Must run through tx; must not commit.
        """
        ...


@dataclass(frozen=True)
class RevisionConfig:
    """Revision retention policy.

    Attributes:
        max_revisions: Revisions kept per post.
        revision_interval_ms: Minimum age gap between two kept revisions.
    """

    max_revisions: int = POST_REVISIONS_COUNT
    revision_interval_ms: int = POST_REVISIONS_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.max_revisions < 1:
            raise ValueError(f"max_revisions must be >= 1, got {self.max_revisions}")
        if self.revision_interval_ms < 0:
            raise ValueError(
                f"revision_interval_ms must be >= 0, got {self.revision_interval_ms}"
            )


class PostRevisions:
    """Default revision scrubber backed by the post_revisions table."""

    def __init__(self, config: RevisionConfig | None = None):
        self.config = config or RevisionConfig()

    def remove_author_from_revisions(self, account_id: UUID, tx: TransactionContext) -> None:
        """Null out author_id on every revision the account authored."""
        result = tx.db.execute(
            update(PostRevision)
            .where(PostRevision.author_id == account_id)
            .values(author_id=None)
            .execution_options(synchronize_session="fetch")
        )

        logger.info(
            "revision_authors_removed",
            account_id=str(account_id),
            revisions=result.rowcount or 0,
        )

    def select_revisions_to_keep(self, revisions: list[PostRevision]) -> list[PostRevision]:
        """Apply the retention policy to one post's revisions.

        The newest revision is always kept. Walking back in time, a revision
        is kept only if it is at least revision_interval_ms older than the
        last kept one, until max_revisions are kept.

        Args:
            revisions: Revisions of a single post, any order.

        Returns:
            Kept revisions, newest first.
        """
        interval = timedelta(milliseconds=self.config.revision_interval_ms)
        ordered = sorted(revisions, key=lambda r: r.created_at, reverse=True)

        kept: list[PostRevision] = []
        last_kept_at: datetime | None = None
        for revision in ordered:
            if len(kept) >= self.config.max_revisions:
                break
            if last_kept_at is None or last_kept_at - revision.created_at >= interval:
                kept.append(revision)
                last_kept_at = revision.created_at

        return kept

    def prune_revisions(self, tx: TransactionContext, post_id: UUID) -> int:
        """Delete a post's revisions that fall outside the retention policy.

        Returns:
            Number of revisions deleted.
        """
        revisions = list(
            tx.db.scalars(select(PostRevision).where(PostRevision.post_id == post_id)).all()
        )
        kept_ids = {revision.id for revision in self.select_revisions_to_keep(revisions)}
        doomed = [revision.id for revision in revisions if revision.id not in kept_ids]

        if doomed:
            tx.db.execute(
                delete(PostRevision)
                .where(PostRevision.id.in_(doomed))
                .execution_options(synchronize_session="fetch")
            )

        logger.info("revisions_pruned", post_id=str(post_id), deleted=len(doomed))
        return len(doomed)
