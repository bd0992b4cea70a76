from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"


# Field types that carry an option list
OPTION_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})


# Pydantic model for a single form field definition
class FormField(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str
    type: FieldType
    label: str = ""
    placeholder: str = ""
    required: bool = False
    options: Optional[Tuple[str, ...]] = None

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "placeholder": self.placeholder,
            "required": self.required,
        }
        if self.options is not None:
            doc["options"] = list(self.options)
        return doc


# Pydantic model for the whole form as produced by the builder
class Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str
    fields: List[FormField]
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_id: Optional[str] = Field(default=None, alias="schemaId")
    values: Dict[str, Any]


# Request bodies accepted by the HTTP API
class SaveSchemaRequest(BaseModel):
    name: Optional[str] = None
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")


class SubmitFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_id: Optional[str] = Field(default=None, alias="schemaId")
    form_data: Optional[Dict[str, Any]] = Field(default=None, alias="formData")


class SchemaSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
