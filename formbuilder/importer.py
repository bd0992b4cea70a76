import io
import json
import zipfile
from typing import Any, Dict, Iterable, Mapping

import pandas as pd

from formbuilder import codec
from formbuilder.errors import MalformedSchema, UnknownFieldType, ValidationError
from formbuilder.fields import FieldList
from formbuilder.schemas import OPTION_TYPES, FieldType, Schema

# Spreadsheet type names that differ from the field type values
TYPE_ALIASES = {
    "dropdown": FieldType.SELECT,
    "multiple choice": FieldType.RADIO,
    "long text": FieldType.TEXTAREA,
    "paragraph": FieldType.TEXTAREA,
}


def field_type_from_label(value) -> FieldType:
    key = str(value or "").strip().lower()
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    try:
        return FieldType(key)
    except ValueError:
        raise UnknownFieldType(value) from None


def _cell(row, column: str) -> str:
    value = row.get(column, "")
    if pd.isna(value):
        return ""
    return str(value).strip()


def build_field_list(rows: Iterable[Mapping[str, Any]]) -> FieldList:
    """Create fields from loose row dicts, assigning fresh ids."""
    field_list = FieldList.create()
    for row in rows:
        field_type = field_type_from_label(row.get("type"))
        field_id = field_list.insert(field_type)
        patch = {
            key: row[key]
            for key in ("label", "placeholder", "required")
            if row.get(key) not in (None, "")
        }
        if field_type in OPTION_TYPES and row.get("options"):
            patch["options"] = row["options"]
        field_list.update(field_id, patch)
    return field_list


def rows_from_excel(contents: bytes):
    df = pd.read_excel(io.BytesIO(contents), engine="openpyxl")

    # Clean up and transform the DataFrame
    rows = []
    for _, row in df.iterrows():
        field_row = {
            "label": _cell(row, "Label"),
            "type": _cell(row, "Type"),
            "placeholder": _cell(row, "Placeholder"),
            "required": _cell(row, "Required").lower() == "yes",
        }
        options = _cell(row, "Option") or _cell(row, "Options")
        if options:
            field_row["options"] = [option.strip() for option in options.split(",") if option.strip()]
        rows.append(field_row)
    return rows


def import_schema(filename: str, contents: bytes, name: str = None) -> Schema:
    """Build a Schema from an uploaded ``.json`` or ``.xlsx`` form definition.

    JSON uploads carry ``formName`` (or ``name``) and a ``fields`` list;
    spreadsheets have one row per field with Label, Type, Required and
    Option columns. Ids are always assigned fresh.
    """
    if filename.endswith(".json"):
        try:
            data: Dict[str, Any] = json.loads(contents)
        except ValueError as e:
            raise MalformedSchema(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedSchema("JSON must be an object")
        fields = data.get("fields")
        if fields is None and isinstance(data.get("schema"), dict):
            fields = data["schema"].get("fields")
        if not isinstance(fields, list) or not fields:
            raise ValidationError("JSON must contain 'fields'.")
        if not all(isinstance(entry, dict) for entry in fields):
            raise MalformedSchema("Every field must be an object")
        form_name = name or data.get("formName") or data.get("name") or ""
        return codec.encode(build_field_list(fields), form_name)

    if filename.endswith(".xlsx"):
        try:
            rows = rows_from_excel(contents)
        except (ValueError, KeyError, zipfile.BadZipFile) as e:
            raise MalformedSchema(f"Error parsing Excel file: {e}") from e
        form_name = name or filename.rsplit(".", 1)[0]
        return codec.encode(build_field_list(rows), form_name)

    raise ValidationError("Invalid file type. Please upload a JSON or Excel file.")
