class FormBuilderError(Exception):
    """Base class for every error raised by the form builder engine."""


class ValidationError(FormBuilderError):
    """Caller input has the wrong shape (missing name, schema or values)."""


class UnknownFieldType(ValidationError):
    def __init__(self, field_type):
        super().__init__(f"Unknown field type: {field_type!r}")
        self.field_type = field_type


class NotFound(FormBuilderError):
    def __init__(self, kind: str, key):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class MalformedSchema(FormBuilderError):
    """Stored schema data is structurally invalid and cannot be loaded."""


class OutOfRange(FormBuilderError):
    def __init__(self, index: int, length: int):
        super().__init__(f"Index {index} out of range for length {length}")
        self.index = index
        self.length = length


class MinimumOptionsViolation(FormBuilderError):
    """A select or radio field would be left with too few options."""


class OptionsNotSupported(FormBuilderError):
    def __init__(self, field_id: str, field_type):
        super().__init__(f"Field {field_id} of type {field_type} has no options")
        self.field_id = field_id
        self.field_type = field_type


class SubmissionInProgress(FormBuilderError):
    """A submit was attempted while the previous one is still outstanding."""


class TransportError(FormBuilderError):
    """The schema store or submission sink could not complete a request."""
