"""Create users, friend request and user block tables."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20260301_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(length=512), nullable=True),
        sa.Column(
            "profile_visibility",
            sa.String(length=16),
            server_default=sa.text("'public'"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("requester_id", sa.String(length=36), nullable=False),
        sa.Column("addressee_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.CheckConstraint(
            "requester_id <> addressee_id",
            name="ck_friend_requests_no_self_request",
        ),
        sa.ForeignKeyConstraint(
            ["requester_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["addressee_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_friend_requests_requester_status",
        "friend_requests",
        ["requester_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_friend_requests_addressee_status",
        "friend_requests",
        ["addressee_id", "status"],
        unique=False,
    )

    op.create_table(
        "user_blocks",
        sa.Column("blocker_id", sa.String(length=36), nullable=False),
        sa.Column("blocked_id", sa.String(length=36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.CheckConstraint(
            "blocker_id <> blocked_id",
            name="ck_user_blocks_no_self_block",
        ),
        sa.ForeignKeyConstraint(
            ["blocker_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["blocked_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("blocker_id", "blocked_id"),
    )
    op.create_index(
        "ix_user_blocks_blocked_blocker",
        "user_blocks",
        ["blocked_id", "blocker_id"],
        unique=False,
    )
    op.create_index(
        "ix_user_blocks_blocker_created_at",
        "user_blocks",
        ["blocker_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_user_blocks_blocker_created_at", table_name="user_blocks")
    op.drop_index("ix_user_blocks_blocked_blocker", table_name="user_blocks")
    op.drop_table("user_blocks")
    op.drop_index("ix_friend_requests_addressee_status", table_name="friend_requests")
    op.drop_index("ix_friend_requests_requester_status", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
