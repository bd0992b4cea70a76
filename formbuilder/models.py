from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


class FormSchema(Base):
    __tablename__ = "form_schemas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schema_id = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_record(self) -> dict:
        return {
            "id": self.schema_id,
            "name": self.name,
            "schema": self.document,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {
            "id": self.schema_id,
            "name": self.name,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(String(32), unique=True, nullable=False, index=True)
    schema_id = Column(String(32), nullable=True, index=True)
    data = Column(JSON, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> dict:
        return {
            "id": self.submission_id,
            "schemaId": self.schema_id,
            "data": self.data,
            "submittedAt": isoformat(self.submitted_at),
        }
