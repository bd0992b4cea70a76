import logging
from typing import Any, Dict, List, Optional

from formbuilder import codec
from formbuilder.errors import FormBuilderError, MalformedSchema, NotFound, TransportError
from formbuilder.fields import FieldList
from formbuilder.preview import PreviewSession, SubmitOutcome
from formbuilder.schemas import Schema
from formbuilder.store import SchemaStore, SubmissionSink

logger = logging.getLogger(__name__)


class BuilderSession:
    """
    State of one form builder: the field list being designed, its name,
    the id of the schema it was loaded from or saved as, and the preview.

    Store and sink calls leave the builder untouched when they fail; the
    message of the failure is kept in ``notice``.
    """

    def __init__(self, store: SchemaStore, sink: SubmissionSink) -> None:
        self.store = store
        self.sink = sink
        self.fields = FieldList.create()
        self.form_name = ""
        self.current_schema_id: Optional[str] = None
        self.is_preview_mode = False
        self.preview = PreviewSession()
        self.saved_schemas: List[Dict[str, Any]] = []
        self.saving = False
        self.notice: Optional[str] = None

    def set_form_name(self, name: str) -> None:
        self.form_name = name

    def generate_schema(self) -> Schema:
        return codec.encode(self.fields, self.form_name)

    def toggle_preview_mode(self) -> bool:
        self.is_preview_mode = not self.is_preview_mode
        self.preview = PreviewSession(self.fields)
        return self.is_preview_mode

    def clear(self) -> None:
        self.fields.clear()
        self.form_name = ""
        self.current_schema_id = None
        self.is_preview_mode = False
        self.preview = PreviewSession()

    def refresh_schemas(self) -> List[Dict[str, Any]]:
        try:
            self.saved_schemas = self.store.list()
        except TransportError as e:
            self.notice = "Failed to load saved forms"
            logger.error("Failed to fetch schemas: %s", e)
        return self.saved_schemas

    def save(self) -> Optional[str]:
        """Persist the current design; returns the new schema id or None."""
        if not self.form_name.strip():
            self.notice = "Please enter a form name"
            return None
        if self.saving:
            return None

        self.saving = True
        try:
            result = self.store.save(self.form_name, self.generate_schema())
        except FormBuilderError as e:
            self.notice = "Failed to save form"
            logger.error("Failed to save form %r: %s", self.form_name, e)
            return None
        finally:
            self.saving = False

        record = result["schema"]
        self.current_schema_id = result["id"]
        self.saved_schemas.insert(0, {
            key: record[key] for key in ("id", "name", "createdAt", "updatedAt")
        })
        self.notice = "Form saved successfully!"
        return result["id"]

    def load(self, schema_id: str) -> bool:
        try:
            record = self.store.load(schema_id)
            fields = codec.decode(record)
        except NotFound:
            self.notice = "Form not found"
            return False
        except (MalformedSchema, TransportError) as e:
            self.notice = "Failed to load form"
            logger.error("Failed to load schema %s: %s", schema_id, e)
            return False

        self.fields.replace(fields)
        self.form_name = record.get("name") or codec.schema_name(record)
        self.current_schema_id = record.get("id", schema_id)
        self.is_preview_mode = False
        self.preview = PreviewSession(self.fields)
        self.notice = "Form loaded successfully!"
        return True

    def submit_preview(self) -> SubmitOutcome:
        outcome = self.preview.submit(self.fields, self.current_schema_id, self.sink)
        self.notice = outcome.notice
        return outcome
