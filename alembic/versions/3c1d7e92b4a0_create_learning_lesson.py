"""create learning_lesson

Revision ID: 3c1d7e92b4a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1d7e92b4a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "learning_lesson",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("course_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("latest_section_id", sa.BigInteger(), nullable=True),
        sa.Column("latest_learn_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expire_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_learning_lesson_user_course", "learning_lesson", ["user_id", "course_id"]
    )
    op.create_index(
        "ix_learning_lesson_user_status_learn_time",
        "learning_lesson",
        ["user_id", "status", "latest_learn_time"],
    )
    op.create_index(
        "ix_learning_lesson_expire_time", "learning_lesson", ["expire_time"]
    )


def downgrade() -> None:
    op.drop_index("ix_learning_lesson_expire_time", table_name="learning_lesson")
    op.drop_index(
        "ix_learning_lesson_user_status_learn_time", table_name="learning_lesson"
    )
    op.drop_index("ix_learning_lesson_user_course", table_name="learning_lesson")
    op.drop_table("learning_lesson")
