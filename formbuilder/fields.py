import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from nanoid import generate
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from formbuilder.errors import (
    MinimumOptionsViolation,
    OptionsNotSupported,
    OutOfRange,
    UnknownFieldType,
    ValidationError,
)
from formbuilder.schemas import OPTION_TYPES, FieldType, FormField

logger = logging.getLogger(__name__)

# A select or radio field is never left with fewer options than this
MIN_OPTIONS = 2
DEFAULT_OPTIONS = ("Option 1", "Option 2")

# Attributes a patch may change; id and type are fixed for the field's lifetime
EDITABLE_ATTRIBUTES = ("label", "placeholder", "required", "options")

Listener = Callable[[Tuple[FormField, ...]], None]

_flag = TypeAdapter(bool)


def coerce_type(field_type) -> FieldType:
    try:
        return FieldType(field_type)
    except ValueError:
        raise UnknownFieldType(field_type) from None


def default_label(field_type: FieldType) -> str:
    name = field_type.value
    return f"{name[:1].upper()}{name[1:]} Field"


def default_placeholder(field_type: FieldType) -> str:
    return f"Enter {field_type.value}..."


def default_options(field_type: FieldType) -> Optional[Tuple[str, ...]]:
    if field_type in OPTION_TYPES:
        return DEFAULT_OPTIONS
    return None


def parse_flag(value, name: str = "required") -> bool:
    """Read a boolean the way pydantic does, so "false", "no" and "0" are False."""
    if value is None:
        return False
    try:
        return _flag.validate_python(value)
    except PydanticValidationError:
        raise ValidationError(f"Invalid value for {name!r}: {value!r}") from None


def new_field(field_type, field_id: str) -> FormField:
    field_type = coerce_type(field_type)
    return FormField(
        id=field_id,
        type=field_type,
        label=default_label(field_type),
        placeholder=default_placeholder(field_type),
        required=False,
        options=default_options(field_type),
    )


class FieldList:
    """
    Ordered collection of form fields being designed in the builder.

    Every mutator builds the new sequence on a copy and swaps it in only when
    the whole operation succeeded, so a rejected call leaves the list exactly
    as it was. Listeners registered with ``subscribe`` receive the new
    snapshot after each effective change.
    """

    def __init__(self, fields: Iterable[FormField] = ()) -> None:
        self._fields: List[FormField] = list(fields)
        self._listeners: List[Listener] = []

    @classmethod
    def create(cls) -> "FieldList":
        return cls()

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FormField]:
        return iter(tuple(self._fields))

    def __getitem__(self, index: int) -> FormField:
        return self._fields[index]

    @property
    def fields(self) -> List[FormField]:
        return list(self._fields)

    def snapshot(self) -> Tuple[FormField, ...]:
        return tuple(self._fields)

    def ids(self) -> List[str]:
        return [field.id for field in self._fields]

    def get(self, field_id: str) -> Optional[FormField]:
        for field in self._fields:
            if field.id == field_id:
                return field
        return None

    def index_of(self, field_id: str) -> Optional[int]:
        for index, field in enumerate(self._fields):
            if field.id == field_id:
                return index
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, fields: List[FormField]) -> None:
        self._fields = fields
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def _fresh_id(self) -> str:
        taken = set(self.ids())
        field_id = generate()
        while field_id in taken:
            field_id = generate()
        return field_id

    # Builder operations

    def insert(self, field_type, at_index: Optional[int] = None) -> str:
        field = new_field(field_type, self._fresh_id())
        fields = list(self._fields)
        if at_index is not None and 0 <= at_index <= len(fields):
            fields.insert(at_index, field)
        else:
            fields.append(field)
        self._commit(fields)
        logger.debug("Inserted %s field %s", field.type.value, field.id)
        return field.id

    def remove(self, field_id: str) -> None:
        fields = [field for field in self._fields if field.id != field_id]
        if len(fields) != len(self._fields):
            self._commit(fields)

    def update(self, field_id: str, patch: Dict) -> None:
        index = self.index_of(field_id)
        if index is None:
            return
        field = self._fields[index]
        changes = {}
        for key, value in patch.items():
            if key not in EDITABLE_ATTRIBUTES:
                logger.debug("Ignoring attribute %r in update of field %s", key, field_id)
                continue
            if key == "options":
                if field.type not in OPTION_TYPES:
                    continue
                value = self._checked_options(value)
            elif key == "required":
                value = parse_flag(value, key)
            else:
                value = "" if value is None else str(value)
            changes[key] = value
        if not changes:
            return
        fields = list(self._fields)
        fields[index] = field.model_copy(update=changes)
        self._commit(fields)

    def move(self, from_index: int, to_index: int) -> None:
        length = len(self._fields)
        for index in (from_index, to_index):
            if not 0 <= index < length:
                raise OutOfRange(index, length)
        if from_index == to_index:
            return
        fields = list(self._fields)
        moved = fields.pop(from_index)
        fields.insert(to_index, moved)
        self._commit(fields)

    def clear(self) -> None:
        if self._fields:
            self._commit([])

    def replace(self, fields: Iterable[FormField]) -> None:
        fields = list(fields)
        ids = [field.id for field in fields]
        if len(set(ids)) != len(ids):
            raise ValidationError("Field ids must be unique")
        self._commit(fields)

    # Option editing for select and radio fields

    def _option_field(self, field_id: str) -> Tuple[Optional[int], Optional[FormField]]:
        index = self.index_of(field_id)
        if index is None:
            return None, None
        field = self._fields[index]
        if field.type not in OPTION_TYPES:
            raise OptionsNotSupported(field_id, field.type.value)
        return index, field

    @staticmethod
    def _checked_options(options) -> Tuple[str, ...]:
        options = tuple(str(option) for option in (options or ()))
        if len(options) < MIN_OPTIONS:
            raise MinimumOptionsViolation(
                f"A choice field needs at least {MIN_OPTIONS} options, got {len(options)}"
            )
        return options

    def _replace_options(self, index: int, field: FormField, options: Tuple[str, ...]) -> None:
        fields = list(self._fields)
        fields[index] = field.model_copy(update={"options": options})
        self._commit(fields)

    def set_options(self, field_id: str, options: Iterable[str]) -> None:
        index, field = self._option_field(field_id)
        if field is None:
            return
        self._replace_options(index, field, self._checked_options(list(options)))

    def add_option(self, field_id: str) -> Optional[str]:
        index, field = self._option_field(field_id)
        if field is None:
            return None
        options = list(field.options or [])
        label = f"Option {len(options) + 1}"
        options.append(label)
        self._replace_options(index, field, tuple(options))
        return label

    def remove_option(self, field_id: str, option_index: int) -> None:
        index, field = self._option_field(field_id)
        if field is None:
            return
        options = list(field.options or [])
        if not 0 <= option_index < len(options):
            raise OutOfRange(option_index, len(options))
        if len(options) <= MIN_OPTIONS:
            raise MinimumOptionsViolation(
                f"Field {field_id} must keep at least {MIN_OPTIONS} options"
            )
        del options[option_index]
        self._replace_options(index, field, tuple(options))
