"""Initial courseware schema.

Content tables (courses through entries), shared media (images, videos),
their link tables, and the archive snapshot table. Every content and media
table carries the soft-delete columns the archive purger looks for.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _lifecycle_columns() -> list[sa.Column]:
    return [
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("purge_after_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def _lifecycle_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_is_archived", table, ["is_archived"])
    op.create_index(f"ix_{table}_purge_after_at", table, ["purge_after_at"])


def upgrade() -> None:
    op.create_table(
        "images",
        sa.Column("image_id", sa.Integer(), primary_key=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("images")

    op.create_table(
        "videos",
        sa.Column("video_id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column(
            "thumbnail_image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True
        ),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("videos")
    op.create_index("ix_videos_thumbnail_image_id", "videos", ["thumbnail_image_id"])

    op.create_table(
        "instructors",
        sa.Column("instructor_id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("instructors")
    op.create_index("ix_instructors_image_id", "instructors", ["image_id"])

    op.create_table(
        "courses",
        sa.Column("course_id", sa.Integer(), primary_key=True),
        sa.Column("course_name", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.video_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("courses")
    op.create_index("ix_courses_image_id", "courses", ["image_id"])
    op.create_index("ix_courses_video_id", "courses", ["video_id"])

    op.create_table(
        "course_instructors",
        sa.Column(
            "course_id",
            sa.Integer(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "instructor_id",
            sa.Integer(),
            sa.ForeignKey("instructors.instructor_id"),
            primary_key=True,
        ),
    )

    op.create_table(
        "sections",
        sa.Column("section_id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.video_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("sections")
    op.create_index("ix_sections_course_id", "sections", ["course_id"])
    op.create_index("ix_sections_image_id", "sections", ["image_id"])
    op.create_index("ix_sections_video_id", "sections", ["video_id"])

    op.create_table(
        "chapters",
        sa.Column("chapter_id", sa.Integer(), primary_key=True),
        sa.Column(
            "section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=False
        ),
        sa.Column("chapter_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("chapters")
    op.create_index("ix_chapters_section_id", "chapters", ["section_id"])
    op.create_index("ix_chapters_image_id", "chapters", ["image_id"])

    op.create_table(
        "tests",
        sa.Column("test_id", sa.Integer(), primary_key=True),
        sa.Column(
            "chapter_id", sa.Integer(), sa.ForeignKey("chapters.chapter_id"), nullable=False
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Integer(), sa.ForeignKey("images.image_id"), nullable=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.video_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("tests")
    op.create_index("ix_tests_chapter_id", "tests", ["chapter_id"])
    op.create_index("ix_tests_image_id", "tests", ["image_id"])
    op.create_index("ix_tests_video_id", "tests", ["video_id"])

    op.create_table(
        "questions",
        sa.Column("question_id", sa.Integer(), primary_key=True),
        sa.Column("test_id", sa.Integer(), sa.ForeignKey("tests.test_id"), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("questions")
    op.create_index("ix_questions_test_id", "questions", ["test_id"])

    op.create_table(
        "options",
        sa.Column("option_id", sa.Integer(), primary_key=True),
        sa.Column(
            "question_id", sa.Integer(), sa.ForeignKey("questions.question_id"), nullable=False
        ),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.video_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("options")
    op.create_index("ix_options_question_id", "options", ["question_id"])
    op.create_index("ix_options_video_id", "options", ["video_id"])

    op.create_table(
        "entries",
        sa.Column("entry_id", sa.Integer(), primary_key=True),
        sa.Column(
            "chapter_id", sa.Integer(), sa.ForeignKey("chapters.chapter_id"), nullable=False
        ),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), sa.ForeignKey("tests.test_id"), nullable=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.video_id"), nullable=True),
        *_lifecycle_columns(),
    )
    _lifecycle_indexes("entries")
    op.create_index("ix_entries_chapter_id", "entries", ["chapter_id"])
    op.create_index("ix_entries_test_id", "entries", ["test_id"])
    op.create_index("ix_entries_video_id", "entries", ["video_id"])

    for table, parent, parent_col, media, media_col in (
        ("option_images", "options", "option_id", "images", "image_id"),
        ("option_videos", "options", "option_id", "videos", "video_id"),
        ("question_images", "questions", "question_id", "images", "image_id"),
        ("question_videos", "questions", "question_id", "videos", "video_id"),
    ):
        op.create_table(
            table,
            sa.Column(
                parent_col,
                sa.Integer(),
                sa.ForeignKey(f"{parent}.{parent_col}", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(
                media_col, sa.Integer(), sa.ForeignKey(f"{media}.{media_col}"), primary_key=True
            ),
        )

    op.create_table(
        "archive_snapshots",
        sa.Column("archive_id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "payload",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("delete_after", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("restored_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_archive_snapshots_entity", "archive_snapshots", ["entity_type", "entity_id"]
    )
    op.create_index("ix_archive_snapshots_delete_after", "archive_snapshots", ["delete_after"])


def downgrade() -> None:
    op.drop_table("archive_snapshots")
    for table in ("question_videos", "question_images", "option_videos", "option_images"):
        op.drop_table(table)
    for table in (
        "entries",
        "options",
        "questions",
        "tests",
        "chapters",
        "sections",
        "course_instructors",
        "courses",
        "instructors",
        "videos",
        "images",
    ):
        op.drop_table(table)
