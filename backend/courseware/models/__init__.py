from courseware.models.archive_snapshot import ArchiveSnapshot, SnapshotAction, SnapshotStatus
from courseware.models.base import ARCHIVE_COLUMNS, ArchivableMixin, Base
from courseware.models.course import Course, CourseInstructor, Instructor
from courseware.models.curriculum import (
    Chapter,
    Entry,
    Option,
    OptionImage,
    OptionVideo,
    Question,
    QuestionImage,
    QuestionVideo,
    Section,
    Test,
)
from courseware.models.media import Image, Video

__all__ = [
    "ARCHIVE_COLUMNS",
    "ArchivableMixin",
    "ArchiveSnapshot",
    "Base",
    "Chapter",
    "Course",
    "CourseInstructor",
    "Entry",
    "Image",
    "Instructor",
    "Option",
    "OptionImage",
    "OptionVideo",
    "Question",
    "QuestionImage",
    "QuestionVideo",
    "Section",
    "SnapshotAction",
    "SnapshotStatus",
    "Test",
    "Video",
]
