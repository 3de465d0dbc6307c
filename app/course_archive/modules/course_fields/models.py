from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.course_archive.models import Base

if TYPE_CHECKING:
    from app.course_archive.modules.courses.models import Course


class CourseField(Base):
    __tablename__ = "course_fields"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Referenced, not owned: deletes are guarded in the service layer.
    courses: Mapped[list["Course"]] = relationship("Course", back_populates="course_field", lazy="select")

    def to_dict(self, course_count: int | None = None) -> dict:
        out: dict = {"id": self.id, "name": self.name}
        if course_count is not None:
            out["courseCount"] = course_count
        return out
