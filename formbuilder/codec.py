from typing import Any, Dict, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from formbuilder.errors import MalformedSchema
from formbuilder.fields import DEFAULT_OPTIONS, MIN_OPTIONS, FieldList
from formbuilder.schemas import OPTION_TYPES, FieldType, FormField, Schema

DEFAULT_FORM_NAME = "Untitled Form"

SchemaSource = Union[Schema, Mapping[str, Any]]


def encode(field_list: FieldList, name: str = "") -> Schema:
    """Turn the builder's field list into a Schema ready to be saved.

    Only the persisted field attributes are copied; the result shares no
    mutable state with the field list.
    """
    return Schema(
        name=(name or "").strip() or DEFAULT_FORM_NAME,
        fields=[
            FormField(**field.to_document())
            for field in field_list
        ],
    )


def document(schema: Schema) -> Dict[str, Any]:
    """Render a Schema as the JSON body stored under ``schema`` in the store."""
    return {
        "name": schema.name,
        "fields": [field.to_document() for field in schema.fields],
    }


def _as_mapping(schema: SchemaSource) -> Mapping[str, Any]:
    if isinstance(schema, Schema):
        return document(schema)
    if not isinstance(schema, Mapping):
        raise MalformedSchema(f"Expected a schema object, got {type(schema).__name__}")
    return schema


def _raw_fields(doc: Mapping[str, Any]):
    if "fields" in doc and doc["fields"] is not None:
        return doc["fields"]
    nested = doc.get("schema")
    if isinstance(nested, Mapping):
        return nested.get("fields")
    return None


def schema_name(schema: SchemaSource) -> str:
    doc = _as_mapping(schema)
    name = doc.get("name")
    if not name and isinstance(doc.get("schema"), Mapping):
        name = doc["schema"].get("name")
    return (name or "").strip() or DEFAULT_FORM_NAME


def _stored_options(field_type: FieldType, options, position: int):
    # Only choice fields carry options; a choice field saved without any
    # gets the defaults a freshly inserted one would have
    if field_type not in OPTION_TYPES:
        return None
    if options is None:
        return DEFAULT_OPTIONS
    if not isinstance(options, (list, tuple)):
        raise MalformedSchema(f"Field #{position} options must be a list")
    if len(options) < MIN_OPTIONS:
        raise MalformedSchema(
            f"Field #{position} needs at least {MIN_OPTIONS} options, got {len(options)}"
        )
    return tuple(str(option) for option in options)


def decode(schema: SchemaSource) -> FieldList:
    """Rehydrate a FieldList from a schema or a stored schema document.

    Fields are read from the top level ``fields`` key, falling back to
    ``schema.fields`` for documents returned by the store. Order and ids are
    kept exactly as stored.
    """
    raw = _raw_fields(_as_mapping(schema))
    if not isinstance(raw, list):
        raise MalformedSchema("Schema fields must be a list")

    fields = []
    seen = set()
    for position, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            raise MalformedSchema(f"Field #{position} is not an object")
        if not entry.get("id") or not entry.get("type"):
            raise MalformedSchema(f"Field #{position} is missing 'id' or 'type'")
        field_id = str(entry["id"])
        if field_id in seen:
            raise MalformedSchema(f"Duplicate field id {field_id!r}")
        try:
            field_type = FieldType(entry["type"])
            field = FormField(
                id=field_id,
                type=field_type,
                label=entry.get("label") or "",
                placeholder=entry.get("placeholder") or "",
                required=entry.get("required") or False,
                options=_stored_options(field_type, entry.get("options"), position),
            )
        except (ValueError, PydanticValidationError) as e:
            raise MalformedSchema(f"Field #{position} is invalid: {e}") from e
        seen.add(field.id)
        fields.append(field)
    return FieldList(fields)
