"""catalog_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Users, resources, comments, ratings, tags, lists, search history and
notifications.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer, primary_key=True, autoincrement=True)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _user_fk(ondelete: str, nullable: bool = True) -> sa.Column:
    return sa.Column(
        "user_id",
        sa.Integer,
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=nullable,
    )


def _resource_fk(nullable: bool = False) -> sa.Column:
    return sa.Column(
        "resource_id",
        sa.Integer,
        sa.ForeignKey("resources.id", ondelete="CASCADE"),
        nullable=nullable,
    )


def _notification_columns() -> list:
    return [
        _id(),
        sa.Column("language", sa.String(10), nullable=False, server_default="en"),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("visibility", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "visibility_global", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("startdate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enddate", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(255), nullable=False, unique=True),
        sa.Column("email", sa.String(255)),
        sa.Column("firstname", sa.String(255)),
        sa.Column("lastname", sa.String(255)),
        sa.Column("cat_username", sa.String(255)),
        sa.Column("cat_password", sa.String(255)),
        sa.Column("home_library", sa.String(255)),
        _timestamp("created"),
    )

    op.create_table(
        "resources",
        _id(),
        sa.Column("record_id", sa.String(255), nullable=False),
        sa.Column("source", sa.String(50), nullable=False, server_default="Solr"),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("author", sa.String(255)),
        sa.Column("year", sa.Integer),
        sa.UniqueConstraint("record_id", "source", name="uq_resources_record_source"),
    )

    op.create_table(
        "comments",
        _id(),
        _user_fk("SET NULL"),
        _resource_fk(),
        sa.Column("comment", sa.Text, nullable=False),
        _timestamp("created"),
    )
    op.create_index("idx_comments_resource_id", "comments", ["resource_id"])

    op.create_table(
        "comments_inappropriate",
        _id(),
        _user_fk("SET NULL"),
        sa.Column(
            "comment_id",
            sa.Integer,
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reason", sa.String(1000), nullable=False),
        _timestamp("created"),
    )

    op.create_table(
        "ratings",
        _id(),
        _user_fk("CASCADE"),
        _resource_fk(),
        sa.Column("rating", sa.Integer, nullable=False),
        _timestamp("created"),
        sa.UniqueConstraint("user_id", "resource_id", name="uq_ratings_user_resource"),
    )

    op.create_table(
        "user_lists",
        _id(),
        _user_fk("CASCADE", nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("public", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("created"),
    )

    op.create_table(
        "tags",
        _id(),
        sa.Column("tag", sa.String(64), nullable=False, unique=True),
    )

    op.create_table(
        "resource_tags",
        _id(),
        _resource_fk(nullable=True),
        sa.Column(
            "tag_id",
            sa.Integer,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "list_id", sa.Integer, sa.ForeignKey("user_lists.id", ondelete="CASCADE")
        ),
        _user_fk("SET NULL"),
        _timestamp("posted"),
    )
    op.create_index("idx_resource_tags_resource_id", "resource_tags", ["resource_id"])
    op.create_index("idx_resource_tags_user_id", "resource_tags", ["user_id"])

    op.create_table(
        "user_resources",
        _id(),
        _user_fk("CASCADE", nullable=False),
        _resource_fk(),
        sa.Column(
            "list_id", sa.Integer, sa.ForeignKey("user_lists.id", ondelete="CASCADE")
        ),
        sa.Column("notes", sa.Text),
        _timestamp("saved"),
    )
    op.create_index("idx_user_resources_user_id", "user_resources", ["user_id"])
    op.create_index("idx_user_resources_list_id", "user_resources", ["list_id"])

    op.create_table(
        "searches",
        _id(),
        _user_fk("CASCADE"),
        sa.Column("session_id", sa.String(128)),
        sa.Column("backend", sa.String(50), nullable=False, server_default="Solr"),
        sa.Column("query", JSONB, nullable=False),
        sa.Column("saved", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("created"),
    )
    op.create_index("idx_searches_session_id", "searches", ["session_id"])

    op.create_table(
        "notifications_pages",
        *_notification_columns(),
        sa.Column("title", sa.String(255), nullable=False),
    )
    op.create_table(
        "notifications_broadcasts",
        *_notification_columns(),
        sa.Column("color", sa.String(20)),
    )


def downgrade() -> None:
    for table in (
        "notifications_broadcasts",
        "notifications_pages",
        "searches",
        "user_resources",
        "resource_tags",
        "tags",
        "user_lists",
        "ratings",
        "comments_inappropriate",
        "comments",
        "resources",
        "users",
    ):
        op.drop_table(table)
