"""create course archive tables

Revision ID: 3f1a9c2b7d40
Revises:
Create Date: 2026-10-19 09:12:31.104522

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, course_fields, courses, course_images and course_documents."""
    # Check if tables already exist (idempotent)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("change_password_key", sa.String(255), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "course_fields" not in existing_tables:
        op.create_table(
            "course_fields",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(64), nullable=False, unique=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "courses" not in existing_tables:
        op.create_table(
            "courses",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("course_number", sa.String(64), nullable=False, unique=True),
            sa.Column("course_code", sa.String(64), nullable=False),
            sa.Column(
                "course_field_id",
                sa.Integer(),
                sa.ForeignKey("course_fields.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("course_name", sa.String(255), nullable=False),
            sa.Column("number_of_beneficiaries", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("number_of_graduates", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("course_duration", sa.Integer(), nullable=False),
            sa.Column("course_hours", sa.Integer(), nullable=False),
            sa.Column("course_venue", sa.String(255), nullable=False),
            sa.Column("course_start_date", sa.Date(), nullable=False),
            sa.Column("course_end_date", sa.Date(), nullable=False),
            sa.Column("trainer_name", sa.String(255), nullable=False),
            sa.Column("trainer_phone_number", sa.String(64), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_courses_course_field_id", "courses", ["course_field_id"])
        op.create_index("ix_courses_course_start_date", "courses", ["course_start_date"])

    if "course_images" not in existing_tables:
        op.create_table(
            "course_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "course_id",
                sa.Integer(),
                sa.ForeignKey("courses.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("url", sa.String(512), nullable=False),
            sa.Column("alt_text", sa.String(255), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_course_images_course_id", "course_images", ["course_id"])

    if "course_documents" not in existing_tables:
        op.create_table(
            "course_documents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "course_id",
                sa.Integer(),
                sa.ForeignKey("courses.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("type", sa.String(32), nullable=False),
            sa.Column("path", sa.String(512), nullable=False),
            sa.Column("file_name", sa.String(255), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_course_documents_course_id", "course_documents", ["course_id"])


def downgrade() -> None:
    op.drop_table("course_documents")
    op.drop_table("course_images")
    op.drop_table("courses")
    op.drop_table("course_fields")
    op.drop_table("users")
