"""Create users and cats tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates `users` and `cats`, with cats.owner_id cascading on user delete.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'user'"),
            comment="user or admin; registration always stores user",
        ),
        sa.Column(
            "password",
            sa.String(255),
            nullable=False,
            comment="werkzeug.security password hash",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_user_name", "users", ["user_name"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "cats",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("cat_name", sa.String(100), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, comment="Kilograms"),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column(
            "filename",
            sa.String(255),
            nullable=False,
            comment="Relative path from storage root to the uploaded image",
        ),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_cats_owner_id", "cats", ["owner_id"])
    # Bounding-box prefilter: latitude BETWEEN .. AND longitude BETWEEN ..
    op.create_index("idx_cats_location", "cats", ["latitude", "longitude"])


def downgrade() -> None:
    op.drop_index("idx_cats_location", table_name="cats")
    op.drop_index("ix_cats_owner_id", table_name="cats")
    op.drop_table("cats")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_user_name", table_name="users")
    op.drop_table("users")
