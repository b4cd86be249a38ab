from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from courseware.models.base import ArchivableMixin, Base


class Image(Base, ArchivableMixin):
    __tablename__ = "images"

    image_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    alt_text: Mapped[str | None] = mapped_column(Text)
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    mime_type: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<Image(id={self.image_id}, url={self.image_url!r})>"


class Video(Base, ArchivableMixin):
    __tablename__ = "videos"

    video_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    video_url: Mapped[str | None] = mapped_column(Text)
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    mime_type: Mapped[str | None] = mapped_column(String(100))
    thumbnail_image_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("images.image_id"), index=True
    )

    def __repr__(self) -> str:
        return f"<Video(id={self.video_id}, title={self.title!r})>"
