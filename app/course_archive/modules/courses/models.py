from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.course_archive.models import Base
from app.course_archive.modules.course_fields.models import CourseField
from app.course_archive.utils import format_date


DOCUMENT_TYPES = (
    "TRAINEES_DATA_FORM",
    "TRAINER_DATA_FORM",
    "ATTENDANCE_FORM",
    "GENERAL_REPORT_FORM",
    "COURSE_CERTIFICATE",
)


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    course_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    course_code: Mapped[str] = mapped_column(String(64), nullable=False)
    course_field_id: Mapped[int] = mapped_column(
        ForeignKey("course_fields.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)

    number_of_beneficiaries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    number_of_graduates: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    course_duration: Mapped[int] = mapped_column(Integer, nullable=False)  # days
    course_hours: Mapped[int] = mapped_column(Integer, nullable=False)

    course_venue: Mapped[str] = mapped_column(String(255), nullable=False)
    course_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    course_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    trainer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trainer_phone_number: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    course_field: Mapped[CourseField] = relationship("CourseField", back_populates="courses", lazy="selectin")

    images: Mapped[list["CourseImage"]] = relationship(
        "CourseImage",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CourseImage.id",
    )
    documents: Mapped[list["CourseDocument"]] = relationship(
        "CourseDocument",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CourseDocument.id",
    )

    def file_pointers(self) -> list[str]:
        return [img.url for img in self.images] + [doc.path for doc in self.documents]

    def to_dict(self, *, include_children: bool = True) -> dict:
        out = {
            "id": self.id,
            "courseNumber": self.course_number,
            "courseCode": self.course_code,
            "courseFieldId": self.course_field_id,
            "courseName": self.course_name,
            "numberOfBeneficiaries": self.number_of_beneficiaries,
            "numberOfGraduates": self.number_of_graduates,
            "courseDuration": self.course_duration,
            "courseHours": self.course_hours,
            "courseVenue": self.course_venue,
            "courseStartDate": format_date(self.course_start_date),
            "courseEndDate": format_date(self.course_end_date),
            "trainerName": self.trainer_name,
            "trainerPhoneNumber": self.trainer_phone_number,
            "notes": self.notes,
            "courseField": self.course_field.to_dict() if self.course_field else None,
        }
        if include_children:
            out["images"] = [img.to_dict() for img in self.images]
            out["documents"] = [doc.to_dict() for doc in self.documents]
        return out


class CourseImage(Base):
    __tablename__ = "course_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    url: Mapped[str] = mapped_column(String(512), nullable=False)  # pointer, e.g. /uploads/images/<name>
    alt_text: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    course: Mapped[Course] = relationship("Course", back_populates="images")

    def to_dict(self) -> dict:
        return {"id": self.id, "courseId": self.course_id, "url": self.url, "altText": self.alt_text}


class CourseDocument(Base):
    __tablename__ = "course_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(32), nullable=False)  # one of DOCUMENT_TYPES
    path: Mapped[str] = mapped_column(String(512), nullable=False)  # pointer, e.g. /uploads/documents/<name>
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)  # original upload name

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    course: Mapped[Course] = relationship("Course", back_populates="documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "courseId": self.course_id,
            "type": self.type,
            "path": self.path,
            "fileName": self.file_name,
        }
