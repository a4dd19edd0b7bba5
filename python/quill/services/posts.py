"""Post service layer.

Post lookups, ordered tag/author edits, and reassignment of an account's
posts to a fallback author.

Authored posts are always walked through iter_authored_post_ids(), which
reads the posts_authors join in keyset-paginated batches of ids. A single
post is loaded at a time, so an account with thousands of posts never has
them all materialized at once.
"""

from collections.abc import Iterable, Iterator
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from quill.db.models import STATUS_ALL, Account, Post, PostAuthor, PostTag, Tag
from quill.db.session import TransactionContext
from quill.errors import ApiErrorCode, NotFoundError
from quill.logging import get_logger

logger = get_logger(__name__)

# Default keyset page size for authored post ids
AUTHORED_IDS_BATCH_SIZE = 500


def iter_authored_post_ids(
    tx: TransactionContext,
    author_id: UUID,
    batch_size: int = AUTHORED_IDS_BATCH_SIZE,
) -> Iterator[UUID]:
    """Lazily yield the ids of every post the account authors.

    Pages through posts_authors ordered by post_id, resuming after the last
    id seen. Rows removed for already-yielded posts (e.g. by reassignment)
    do not shift later pages.

    Args:
        tx: Open transaction.
        author_id: Account whose posts to enumerate.
        batch_size: Ids fetched per query.

    Yields:
        Post ids in ascending order.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    last_post_id: UUID | None = None
    while True:
        stmt = (
            select(PostAuthor.post_id)
            .where(PostAuthor.author_id == author_id)
            .order_by(PostAuthor.post_id)
            .limit(batch_size)
        )
        if last_post_id is not None:
            stmt = stmt.where(PostAuthor.post_id > last_post_id)

        batch = tx.db.scalars(stmt).all()
        if not batch:
            return

        yield from batch

        if len(batch) < batch_size:
            return
        last_post_id = batch[-1]


def get_post(tx: TransactionContext, post_id: UUID, status: str = STATUS_ALL) -> Post:
    """Load one post with its ordered tags and authors.

    Raises:
        NotFoundError: E_POST_NOT_FOUND if no post matches.
    """
    stmt = (
        select(Post)
        .where(Post.id == post_id)
        .options(selectinload(Post.tag_links), selectinload(Post.author_links))
        .execution_options(populate_existing=True)
    )
    if status != STATUS_ALL:
        stmt = stmt.where(Post.status == status)

    post = tx.db.scalars(stmt).first()
    if post is None:
        raise NotFoundError(ApiErrorCode.E_POST_NOT_FOUND, f"Post {post_id} not found")
    return post


def set_post_tags(tx: TransactionContext, post: Post, tags: Iterable[Tag]) -> None:
    """Replace a post's tag list, keeping the given order.

    Existing links are reused with their sort_order recomputed; links for
    tags no longer listed are removed. Repeated tags are kept once.
    """
    existing = {link.tag_id: link for link in post.tag_links}
    links: list[PostTag] = []
    seen: set[UUID] = set()

    for tag in tags:
        if tag.id in seen:
            continue
        seen.add(tag.id)
        link = existing.get(tag.id) or PostTag(tag_id=tag.id, tag=tag)
        link.sort_order = len(links)
        links.append(link)

    post.tag_links = links
    tx.db.flush()


def set_post_authors(tx: TransactionContext, post: Post, authors: Iterable[Account]) -> None:
    """Replace a post's author list, keeping the given order.

    The first author is the primary author.
    """
    existing = {link.author_id: link for link in post.author_links}
    links: list[PostAuthor] = []
    seen: set[UUID] = set()

    for author in authors:
        if author.id in seen:
            continue
        seen.add(author.id)
        link = existing.get(author.id) or PostAuthor(author_id=author.id, author=author)
        link.sort_order = len(links)
        links.append(link)

    if not links:
        raise ValueError(f"Post {post.id} must keep at least one author")

    post.author_links = links
    tx.db.flush()


def reassign_posts_by_author(
    tx: TransactionContext,
    author_id: UUID,
    fallback_author: Account,
    batch_size: int = AUTHORED_IDS_BATCH_SIZE,
) -> int:
    """Detach an account from every post it authors.

    Co-authored posts simply lose the account from their author list.
    Posts where it is the sole author are handed to fallback_author.

    Args:
        tx: Open transaction.
        author_id: Account being detached.
        fallback_author: Account that takes over sole-authored posts.
        batch_size: Keyset page size for authored post ids.

    Returns:
        Number of posts handed to the fallback author.
    """
    if fallback_author.id == author_id:
        raise ValueError("Fallback author must differ from the author being removed")

    handed_over = 0
    detached = 0

    for post_id in iter_authored_post_ids(tx, author_id, batch_size):
        post = get_post(tx, post_id)
        remaining = [author for author in post.authors if author.id != author_id]

        if not remaining:
            remaining = [fallback_author]
            handed_over += 1
        else:
            detached += 1

        set_post_authors(tx, post, remaining)

    logger.info(
        "posts_reassigned",
        author_id=str(author_id),
        fallback_author_id=str(fallback_author.id),
        handed_over=handed_over,
        detached=detached,
    )

    return handed_over
