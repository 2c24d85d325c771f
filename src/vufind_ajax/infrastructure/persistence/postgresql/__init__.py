"""PostgreSQL database layer for the catalog.

Provides SQLAlchemy models and the async client used by the repositories.
"""

from .models import (
    BaseModel,
    Comment,
    CommentInappropriate,
    NotificationsBroadcast,
    NotificationsPage,
    Rating,
    Resource,
    ResourceTag,
    Search,
    Tag,
    User,
    UserList,
    UserResource,
)

__all__ = [
    "BaseModel",
    "User",
    "Resource",
    "Comment",
    "CommentInappropriate",
    "Rating",
    "Tag",
    "ResourceTag",
    "UserList",
    "UserResource",
    "Search",
    "NotificationsPage",
    "NotificationsBroadcast",
]
