from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from courseware.models.base import ArchivableMixin, Base


class Instructor(Base, ArchivableMixin):
    __tablename__ = "instructors"

    instructor_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text)
    image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("images.image_id"), index=True)


class Course(Base, ArchivableMixin):
    __tablename__ = "courses"

    course_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    image_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("images.image_id"), index=True)
    video_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("videos.video_id"), index=True)


class CourseInstructor(Base):
    __tablename__ = "course_instructors"

    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), primary_key=True
    )
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.instructor_id"), primary_key=True
    )
