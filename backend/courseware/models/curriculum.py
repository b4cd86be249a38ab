from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from courseware.models.base import ArchivableMixin, Base


class Section(Base, ArchivableMixin):
    __tablename__ = "sections"

    section_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.course_id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("images.image_id"), index=True)
    video_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("videos.video_id"), index=True)


class Chapter(Base, ArchivableMixin):
    __tablename__ = "chapters"

    chapter_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.section_id"), nullable=False, index=True
    )
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("images.image_id"), index=True)


class Test(Base, ArchivableMixin):
    __tablename__ = "tests"
    __test__ = False  # keep pytest from collecting the model

    test_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chapter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chapters.chapter_id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("images.image_id"), index=True)
    video_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("videos.video_id"), index=True)


class Question(Base, ArchivableMixin):
    __tablename__ = "questions"

    question_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    test_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tests.test_id"), nullable=False, index=True
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)


class Option(Base, ArchivableMixin):
    __tablename__ = "options"

    option_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.question_id"), nullable=False, index=True
    )
    option_text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text)
    video_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("videos.video_id"), index=True)


class Entry(Base, ArchivableMixin):
    __tablename__ = "entries"

    entry_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chapter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chapters.chapter_id"), nullable=False, index=True
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    test_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("tests.test_id"), index=True)
    video_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("videos.video_id"), index=True)


# ── Media link tables ───────────────────────────────────────────────


class OptionImage(Base):
    __tablename__ = "option_images"

    option_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("options.option_id", ondelete="CASCADE"), primary_key=True
    )
    image_id: Mapped[int] = mapped_column(Integer, ForeignKey("images.image_id"), primary_key=True)


class OptionVideo(Base):
    __tablename__ = "option_videos"

    option_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("options.option_id", ondelete="CASCADE"), primary_key=True
    )
    video_id: Mapped[int] = mapped_column(Integer, ForeignKey("videos.video_id"), primary_key=True)


class QuestionImage(Base):
    __tablename__ = "question_images"

    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), primary_key=True
    )
    image_id: Mapped[int] = mapped_column(Integer, ForeignKey("images.image_id"), primary_key=True)


class QuestionVideo(Base):
    __tablename__ = "question_videos"

    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), primary_key=True
    )
    video_id: Mapped[int] = mapped_column(Integer, ForeignKey("videos.video_id"), primary_key=True)
