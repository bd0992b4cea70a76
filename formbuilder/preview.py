import logging
import os
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import BaseModel

from formbuilder.errors import SubmissionInProgress, TransportError
from formbuilder.fields import FieldList
from formbuilder.schemas import FieldType, FormField, Schema, SubmissionRequest

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_EMAIL_MESSAGE = "Please enter a valid email address"

FieldSource = Union[Schema, FieldList, Iterable[FormField]]


def is_empty(value: Any) -> bool:
    return value is None or value is False or value == "" or value == [] or value == {}


def _check_email(field: FormField, value: Any) -> Optional[str]:
    if EMAIL_PATTERN.fullmatch(str(value)):
        return None
    return INVALID_EMAIL_MESSAGE


# Format checks run on non-empty values, keyed by field type. Types missing
# here (number, date, file, ...) rely on the input control's native typing.
FORMAT_CHECKS: Dict[FieldType, Callable[[FormField, Any], Optional[str]]] = {
    FieldType.EMAIL: _check_email,
}


class InputShape(NamedTuple):
    control: str
    input_type: Optional[str]
    value_kind: str


# What the preview renders for each field type and what kind of value it yields
INPUT_SHAPES: Dict[FieldType, InputShape] = {
    FieldType.TEXT: InputShape("input", "text", "string"),
    FieldType.TEXTAREA: InputShape("textarea", None, "string"),
    FieldType.EMAIL: InputShape("input", "email", "string"),
    FieldType.NUMBER: InputShape("input", "number", "string"),
    FieldType.SELECT: InputShape("select", None, "string"),
    FieldType.RADIO: InputShape("radio", None, "string"),
    FieldType.CHECKBOX: InputShape("checkbox", None, "boolean"),
    FieldType.DATE: InputShape("input", "date", "string"),
    FieldType.FILE: InputShape("input", "file", "file_name"),
}


def _as_boolean(value: Any) -> bool:
    return value is True or value == "true"


def _as_file_name(value: Any) -> str:
    if value is None or value == "":
        return ""
    # Upload objects (starlette, werkzeug) expose filename; open files expose name
    name = getattr(value, "filename", None) or getattr(value, "name", None) or value
    return os.path.basename(str(name))


def _as_string(value: Any) -> str:
    return "" if value is None else str(value)


VALUE_COERCIONS: Dict[str, Callable[[Any], Any]] = {
    "string": _as_string,
    "boolean": _as_boolean,
    "file_name": _as_file_name,
}


def coerce_value(field: FormField, value: Any) -> Any:
    return VALUE_COERCIONS[INPUT_SHAPES[field.type].value_kind](value)


def input_shape(field: FormField, value: Any = None, error: Optional[str] = None) -> Dict[str, Any]:
    """Describe the control the preview shows for ``field``."""
    shape = INPUT_SHAPES[field.type]
    if value is None:
        value = coerce_value(field, None)
    return {
        "id": field.id,
        "type": field.type.value,
        "control": shape.control,
        "inputType": shape.input_type,
        "valueKind": shape.value_kind,
        "label": field.label,
        "placeholder": field.placeholder,
        "required": field.required,
        "options": list(field.options) if field.options is not None else None,
        "value": value,
        "error": error,
    }


def _fields_of(source: FieldSource) -> Iterable[FormField]:
    if isinstance(source, Schema):
        return source.fields
    return source


def validate_field(field: FormField, value: Any) -> Optional[str]:
    if is_empty(value):
        if field.required:
            return f"{field.label} is required"
        return None
    check = FORMAT_CHECKS.get(field.type)
    if check is None:
        return None
    return check(field, value)


def validate(fields: FieldSource, values: Dict[str, Any]) -> Dict[str, str]:
    """Return a message per failing field id; an empty dict means valid."""
    errors = {}
    for field in _fields_of(fields):
        message = validate_field(field, values.get(field.id))
        if message:
            errors[field.id] = message
    return errors


def build_submission(schema_id: Optional[str], values: Dict[str, Any]) -> SubmissionRequest:
    return SubmissionRequest(schema_id=schema_id, values=dict(values))


class PreviewState(str, Enum):
    EDITING = "editing"
    VALIDATING = "validating"
    EDITING_WITH_ERRORS = "editing_with_errors"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class SubmitOutcome(BaseModel):
    ok: bool
    errors: Dict[str, str] = {}
    receipt: Optional[Dict[str, Any]] = None
    notice: Optional[str] = None


class PreviewSession:
    """
    Values typed into a previewed form, with the validation errors of the
    last pass.

    ``submit`` runs the whole cycle: validate, hand the payload to the sink,
    and reset on success. A sink failure leaves the values in place and only
    sets ``notice``; field errors are kept for validation failures.
    """

    def __init__(self, fields: FieldSource = ()) -> None:
        self.fields: Dict[str, FormField] = {field.id: field for field in _fields_of(fields)}
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}
        self.submitting = False
        self.state = PreviewState.EDITING
        self.notice: Optional[str] = None

    def set_value(self, field_id: str, value: Any) -> None:
        field = self.fields.get(field_id)
        if field is not None:
            value = coerce_value(field, value)
        self.values[field_id] = value
        self.errors.pop(field_id, None)
        if self.state == PreviewState.SUBMITTED:
            self.state = PreviewState.EDITING

    def get_value(self, field_id: str, default: Any = "") -> Any:
        return self.values.get(field_id, default)

    def render(self) -> List[Dict[str, Any]]:
        """Input descriptors for every previewed field, in display order."""
        return [
            input_shape(field, self.values.get(field.id), self.errors.get(field.id))
            for field in self.fields.values()
        ]

    def reset(self) -> None:
        self.values = {}
        self.errors = {}
        self.notice = None
        self.state = PreviewState.EDITING

    def validate(self, fields: FieldSource) -> Dict[str, str]:
        self.state = PreviewState.VALIDATING
        self.errors = validate(fields, self.values)
        self.state = PreviewState.EDITING_WITH_ERRORS if self.errors else PreviewState.EDITING
        return dict(self.errors)

    def submit(self, fields: FieldSource, schema_id: Optional[str], sink) -> SubmitOutcome:
        if self.submitting:
            raise SubmissionInProgress("A submission for this form is already in flight")

        errors = self.validate(fields)
        if errors:
            self.notice = "Please fix the errors in the form"
            return SubmitOutcome(ok=False, errors=errors, notice=self.notice)

        request = build_submission(schema_id, self.values)
        self.submitting = True
        self.state = PreviewState.SUBMITTING
        try:
            receipt = sink.submit(request.schema_id, request.values)
        except TransportError as e:
            logger.error("Failed to submit form %s: %s", schema_id, e)
            self.state = PreviewState.EDITING_WITH_ERRORS
            self.notice = "Failed to submit form"
            return SubmitOutcome(ok=False, notice=self.notice)
        finally:
            self.submitting = False

        logger.info("Form %s submitted as %s", schema_id, receipt.get("submissionId"))
        self.reset()
        self.state = PreviewState.SUBMITTED
        return SubmitOutcome(ok=True, receipt=receipt, notice="Form submitted successfully!")
