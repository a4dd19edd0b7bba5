"""Tag service layer and marker tag assignment.

Before an account's posts change hands, every post it authored is tagged
with the account's marker tag so the content stays identifiable after the
account is gone.

Marker tag identity:
- slug: "hash-" + account slug (the lookup key, see marker_tag_slug)
- name: "#" + account slug (internal tags are named with a leading '#')
- visibility: internal

Concurrency:
- get_or_create_tag() inserts inside a SAVEPOINT; the unique constraint on
  tags.slug rejects a duplicate from a concurrent creator, and the loser
  rolls back to the savepoint and re-reads the winner's row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from quill.db.models import STATUS_ALL, Tag, TagVisibility
from quill.db.session import TransactionContext, nested
from quill.errors import ApiErrorCode, ConflictError
from quill.logging import get_logger
from quill.services.accounts import get_account
from quill.services.posts import (
    AUTHORED_IDS_BATCH_SIZE,
    get_post,
    iter_authored_post_ids,
    set_post_tags,
)

logger = get_logger(__name__)

MARKER_TAG_SLUG_PREFIX = "hash-"
MARKER_TAG_NAME_PREFIX = "#"


def marker_tag_slug(account_slug: str) -> str:
    """Canonical marker tag slug for an account slug.

    Both the lookup and the creation path go through here, so they can
    never disagree on the slug.
    """
    return f"{MARKER_TAG_SLUG_PREFIX}{account_slug}"


def marker_tag_name(account_slug: str) -> str:
    """Display name of an account's marker tag."""
    return f"{MARKER_TAG_NAME_PREFIX}{account_slug}"


def get_tag_by_slug(tx: TransactionContext, slug: str) -> Tag | None:
    """Look a tag up by slug."""
    return tx.db.scalars(select(Tag).where(Tag.slug == slug)).first()


def get_or_create_tag(
    tx: TransactionContext,
    slug: str,
    name: str,
    visibility: str = TagVisibility.internal.value,
) -> tuple[Tag, bool]:
    """Return the tag with this slug, creating it if absent.

    Race-safe: a concurrent creator that commits first makes our insert
    fail on uix_tags_slug; we roll back to the savepoint and re-read.

    Args:
        tx: Open transaction.
        slug: Tag slug (identity key).
        name: Display name used only when creating.
        visibility: Visibility used only when creating.

    Returns:
        Tuple of (tag, is_created).

    Raises:
        ConflictError: E_TAG_SLUG_CONFLICT if the insert failed yet no tag
            with the slug is visible afterwards.
    """
    tag = get_tag_by_slug(tx, slug)
    if tag is not None:
        return tag, False

    tag = Tag(slug=slug, name=name, visibility=visibility)
    try:
        with nested(tx):
            tx.db.add(tag)
            tx.db.flush()
    except IntegrityError as exc:
        # Lost race: another transaction created it; fetch the existing one
        existing = get_tag_by_slug(tx, slug)
        if existing is None:
            logger.error("tag_create_conflict_unresolved", slug=slug)
            raise ConflictError(
                ApiErrorCode.E_TAG_SLUG_CONFLICT,
                f"Tag {slug} could not be created or found",
            ) from exc

        logger.info("tag_found_after_race", slug=slug, tag_id=str(existing.id))
        return existing, False

    logger.info("tag_created", slug=slug, tag_id=str(tag.id))
    return tag, True


def assign_marker_tag(
    tx: TransactionContext,
    account_id: UUID,
    batch_size: int = AUTHORED_IDS_BATCH_SIZE,
) -> Tag:
    """Tag every post the account authored with its marker tag.

    Idempotent: posts already carrying the marker are left alone and the
    tag itself is created at most once. The marker is appended after the
    post's existing tags.

    Must run before the account's posts are reassigned: it walks the
    original authorship join.

    Args:
        tx: Open transaction.
        account_id: Account whose posts to tag.
        batch_size: Keyset page size for authored post ids.

    Returns:
        The marker tag.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if the account doesn't exist.
    """
    account = get_account(tx, account_id, status=STATUS_ALL)
    slug = marker_tag_slug(account.slug)
    tag, _ = get_or_create_tag(tx, slug, marker_tag_name(account.slug))

    # NOTE: posts are edited one at a time. A bulk insert into posts_tags
    # can't recompute each post's sort_order; revisit if this becomes a
    # bottleneck.
    tagged = 0
    already_tagged = 0
    for post_id in iter_authored_post_ids(tx, account_id, batch_size):
        post = get_post(tx, post_id)

        if slug in {existing.slug for existing in post.tags}:
            already_tagged += 1
            continue

        set_post_tags(tx, post, [*post.tags, tag])
        tagged += 1

    logger.info(
        "marker_tag_assigned",
        account_id=str(account_id),
        tag_slug=slug,
        tagged=tagged,
        already_tagged=already_tagged,
    )

    return tag
