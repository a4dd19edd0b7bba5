"""SQLAlchemy ORM models for Quill.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are the portable generic ones so the same metadata runs on
PostgreSQL (production) and SQLite (tests). Status enums are stored as text
guarded by check constraints.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================

# Filter sentinel accepted wherever a status filter is: matches every status.
STATUS_ALL = "all"


class AccountStatus(str, PyEnum):
    """Account sign-in states.

    States:
        active: Can sign in
        inactive: Suspended by an administrator
        locked: Sign-in disabled until the password is reset
    """

    active = "active"
    inactive = "inactive"
    locked = "locked"


# Statuses matched by account lookups that don't pass an explicit status.
ACTIVE_STATES = (AccountStatus.active.value, AccountStatus.inactive.value)


class PostStatus(str, PyEnum):
    """Post publication states."""

    draft = "draft"
    published = "published"
    scheduled = "scheduled"


class TagVisibility(str, PyEnum):
    """Tag visibility. Internal tags are not shown on the public site."""

    public = "public"
    internal = "internal"


class ApiKeyType(str, PyEnum):
    """API key kinds."""

    admin = "admin"
    content = "content"


# =============================================================================
# Models
# =============================================================================


class Account(Base):
    """Account (staff user) model.

    The slug is unique and is the identity used to derive the account's
    marker tag.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=AccountStatus.active.value
    )
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'locked')",
            name="ck_users_status",
        ),
        UniqueConstraint("slug", name="uix_users_slug"),
        UniqueConstraint("email", name="uix_users_email"),
    )


class Post(Base):
    """Post model. Tags and authors are ordered through join tables."""

    __tablename__ = "posts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=PostStatus.draft.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'scheduled')",
            name="ck_posts_status",
        ),
        UniqueConstraint("slug", name="uix_posts_slug"),
    )

    # Relationships
    tag_links: Mapped[list["PostTag"]] = relationship(
        "PostTag",
        back_populates="post",
        order_by="PostTag.sort_order",
        cascade="all, delete-orphan",
    )
    author_links: Mapped[list["PostAuthor"]] = relationship(
        "PostAuthor",
        back_populates="post",
        order_by="PostAuthor.sort_order",
        cascade="all, delete-orphan",
    )

    @property
    def tags(self) -> list["Tag"]:
        """Tags in display order."""
        return [link.tag for link in self.tag_links]

    @property
    def authors(self) -> list["Account"]:
        """Authors in display order; the first one is the primary author."""
        return [link.author for link in self.author_links]


class Tag(Base):
    """Tag model. The slug is the identity key."""

    __tablename__ = "tags"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[str] = mapped_column(
        Text, nullable=False, default=TagVisibility.public.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "visibility IN ('public', 'internal')",
            name="ck_tags_visibility",
        ),
        UniqueConstraint("slug", name="uix_tags_slug"),
    )


class PostTag(Base):
    """Ordered post ↔ tag link."""

    __tablename__ = "posts_tags"

    post_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    post: Mapped["Post"] = relationship("Post", back_populates="tag_links")
    tag: Mapped["Tag"] = relationship("Tag", lazy="joined")


class PostAuthor(Base):
    """Ordered post ↔ author link (the authorship join).

    author_id has no ON DELETE action: an account cannot be removed while it
    still authors posts.
    """

    __tablename__ = "posts_authors"

    post_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    author_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        primary_key=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    post: Mapped["Post"] = relationship("Post", back_populates="author_links")
    author: Mapped["Account"] = relationship("Account", lazy="joined")


class ApiKey(Base):
    """API key owned by an account."""

    __tablename__ = "api_keys"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(Text, nullable=False, default=ApiKeyType.admin.value)
    secret: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('admin', 'content')",
            name="ck_api_keys_type",
        ),
    )


class AccountSession(Base):
    """Signed-in session belonging to an account. Removed with the account."""

    __tablename__ = "sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class PostRevision(Base):
    """Historical snapshot of a post.

    author_id is nullable: revisions outlive the accounts that wrote them,
    anonymized.
    """

    __tablename__ = "post_revisions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    post_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    lexical: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
