import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from nanoid import generate
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formbuilder.codec import document
from formbuilder.config import settings
from formbuilder.errors import NotFound, TransportError, ValidationError
from formbuilder.models import FormSchema, Submission, utcnow
from formbuilder.schemas import Schema

logger = logging.getLogger(__name__)


class SchemaStore(Protocol):
    def save(self, name: str, schema) -> Dict[str, Any]: ...

    def load(self, schema_id: str) -> Dict[str, Any]: ...

    def list(self) -> List[Dict[str, Any]]: ...


class SubmissionSink(Protocol):
    def submit(self, schema_id: Optional[str], values: Dict[str, Any]) -> Dict[str, Any]: ...

    def list(self, schema_id: Optional[str] = None) -> List[Dict[str, Any]]: ...


class SqlSchemaStore:
    """Schema documents kept in the ``form_schemas`` table."""

    def __init__(self, db: Session, id_size: int = None) -> None:
        self.db = db
        self.id_size = id_size or settings.SCHEMA_ID_SIZE

    def _new_id(self) -> str:
        schema_id = generate(size=self.id_size)
        while self.db.query(FormSchema.id).filter(FormSchema.schema_id == schema_id).first():
            schema_id = generate(size=self.id_size)
        return schema_id

    def save(self, name: str, schema: Union[Schema, Mapping[str, Any], None]) -> Dict[str, Any]:
        if not name or not str(name).strip() or not schema:
            raise ValidationError("Name and schema are required")
        body = document(schema) if isinstance(schema, Schema) else dict(schema)

        try:
            now = utcnow()
            record = FormSchema(
                schema_id=self._new_id(),
                name=str(name),
                document=body,
                created_at=now,
                updated_at=now,
            )
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error saving schema %r: %s", name, e)
            raise TransportError("Failed to save schema") from e

        logger.info("Saved schema %s (%s)", record.schema_id, record.name)
        return {"id": record.schema_id, "schema": record.to_record()}

    def _get(self, schema_id: str) -> Optional[FormSchema]:
        try:
            return self.db.query(FormSchema).filter(FormSchema.schema_id == schema_id).first()
        except SQLAlchemyError as e:
            logger.error("Error loading schema %s: %s", schema_id, e)
            raise TransportError("Failed to load schema") from e

    def load(self, schema_id: str) -> Dict[str, Any]:
        record = self._get(schema_id)
        if record is None:
            raise NotFound("Schema", schema_id)
        return record.to_record()

    def list(self) -> List[Dict[str, Any]]:
        try:
            records = self.db.query(FormSchema).order_by(FormSchema.id).all()
        except SQLAlchemyError as e:
            logger.error("Error fetching schemas: %s", e)
            raise TransportError("Failed to fetch schemas") from e
        return [record.to_summary() for record in records]


class SqlSubmissionSink:
    """Append-only log of form submissions in the ``submissions`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def submit(self, schema_id: Optional[str], values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if values is None:
            raise ValidationError("Form data is required")

        try:
            submission = Submission(
                submission_id=generate(),
                schema_id=schema_id,
                data=dict(values),
                submitted_at=utcnow(),
            )
            self.db.add(submission)
            self.db.commit()
            self.db.refresh(submission)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error submitting form %s: %s", schema_id, e)
            raise TransportError("Failed to submit form") from e

        record = submission.to_record()
        logger.info("Stored submission %s for schema %s", record["id"], schema_id)
        return {"submissionId": record["id"], "submittedAt": record["submittedAt"]}

    def list(self, schema_id: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            query = self.db.query(Submission)
            if schema_id:
                query = query.filter(Submission.schema_id == schema_id)
            submissions = query.order_by(Submission.id).all()
        except SQLAlchemyError as e:
            logger.error("Error fetching submissions: %s", e)
            raise TransportError("Failed to fetch submissions") from e
        return [submission.to_record() for submission in submissions]
