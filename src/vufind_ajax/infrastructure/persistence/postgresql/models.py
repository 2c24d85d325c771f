"""SQLAlchemy async models for the VuFind catalog database.

Defines the tables the AJAX handlers read and write:
- Users and their stored ILS credentials
- Resources (records known to the database) and per-user saved resources
- Comments, inappropriate-comment reports and ratings
- Tags and resource/tag links
- User lists
- Search history
- Notification pages and broadcasts

All timestamps use UTC. Primary keys are auto-increment integers.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

BaseModel = declarative_base()


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


class User(BaseModel):
    """Catalog user with optional stored ILS credentials."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    email = Column(String(255), nullable=True)
    firstname = Column(String(255), nullable=True)
    lastname = Column(String(255), nullable=True)
    cat_username = Column(String(255), nullable=True)
    cat_password = Column(String(255), nullable=True)
    home_library = Column(String(255), nullable=True)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    lists = relationship("UserList", back_populates="user")


class Resource(BaseModel):
    """A record (by backend id) that users have interacted with."""

    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(String(255), nullable=False)
    source = Column(String(50), nullable=False, default="Solr")
    title = Column(String(255), nullable=False, default="")
    author = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("record_id", "source", name="uq_resources_record_source"),
    )


class Comment(BaseModel):
    """User comment on a resource."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    resource_id = Column(
        Integer, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    comment = Column(Text, nullable=False)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user = relationship("User")

    __table_args__ = (Index("idx_comments_resource_id", "resource_id"),)


class CommentInappropriate(BaseModel):
    """Report flagging a comment as inappropriate."""

    __tablename__ = "comments_inappropriate"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    comment_id = Column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False
    )
    reason = Column(String(1000), nullable=False)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)


class Rating(BaseModel):
    """Star rating (1-5) given by a user to a resource."""

    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    resource_id = Column(
        Integer, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    rating = Column(Integer, nullable=False)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "resource_id", name="uq_ratings_user_resource"),
    )


class Tag(BaseModel):
    """Distinct tag text."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tag = Column(String(64), nullable=False, unique=True)


class ResourceTag(BaseModel):
    """Link between a resource, a tag and the user who applied it."""

    __tablename__ = "resource_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_id = Column(Integer, ForeignKey("resources.id", ondelete="CASCADE"))
    tag_id = Column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )
    list_id = Column(Integer, ForeignKey("user_lists.id", ondelete="CASCADE"))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    posted = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    tag = relationship("Tag")

    __table_args__ = (
        Index("idx_resource_tags_resource_id", "resource_id"),
        Index("idx_resource_tags_user_id", "user_id"),
    )


class UserList(BaseModel):
    """Favorites list owned by a user."""

    __tablename__ = "user_lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    public = Column(Boolean, default=False, nullable=False)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user = relationship("User", back_populates="lists")


class UserResource(BaseModel):
    """A resource saved by a user, optionally on a list, with notes."""

    __tablename__ = "user_resources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    resource_id = Column(
        Integer, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    list_id = Column(Integer, ForeignKey("user_lists.id", ondelete="CASCADE"))
    notes = Column(Text, nullable=True)
    saved = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user_list = relationship("UserList")

    __table_args__ = (
        Index("idx_user_resources_user_id", "user_id"),
        Index("idx_user_resources_list_id", "list_id"),
    )


class Search(BaseModel):
    """Search history entry."""

    __tablename__ = "searches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    session_id = Column(String(128), nullable=True)
    backend = Column(String(50), nullable=False, default="Solr")
    query = Column(JSONB, nullable=False)
    saved = Column(Boolean, default=False, nullable=False)
    created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (Index("idx_searches_session_id", "session_id"),)


class NotificationsPage(BaseModel):
    """Notification page shown in the page header."""

    __tablename__ = "notifications_pages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    language = Column(String(10), nullable=False, default="en")
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    priority = Column(Integer, nullable=False, default=0)
    visibility = Column(Boolean, default=True, nullable=False)
    visibility_global = Column(Boolean, default=False, nullable=False)
    startdate = Column(DateTime(timezone=True), nullable=True)
    enddate = Column(DateTime(timezone=True), nullable=True)


class NotificationsBroadcast(BaseModel):
    """Broadcast banner shown on every page."""

    __tablename__ = "notifications_broadcasts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    language = Column(String(10), nullable=False, default="en")
    content = Column(Text, nullable=False, default="")
    priority = Column(Integer, nullable=False, default=0)
    color = Column(String(20), nullable=True)
    visibility = Column(Boolean, default=True, nullable=False)
    visibility_global = Column(Boolean, default=False, nullable=False)
    startdate = Column(DateTime(timezone=True), nullable=True)
    enddate = Column(DateTime(timezone=True), nullable=True)
