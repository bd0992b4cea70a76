import pytest

from formbuilder import codec
from formbuilder.errors import MalformedSchema
from formbuilder.fields import FieldList
from formbuilder.schemas import FieldType


@pytest.fixture
def contact_fields():
    field_list = FieldList.create()
    field_list.insert("text")
    field_list.insert("select")
    return field_list


def test_encode_contact_form(contact_fields):
    schema = codec.encode(contact_fields, "Contact")

    assert schema.id is None
    assert schema.name == "Contact"
    assert [field.type for field in schema.fields] == [FieldType.TEXT, FieldType.SELECT]
    assert schema.fields[0].label == "Text Field"
    assert schema.fields[0].required is False
    assert schema.fields[1].options == ("Option 1", "Option 2")


@pytest.mark.parametrize("name", ["", "   ", None])
def test_encode_defaults_blank_name(contact_fields, name):
    assert codec.encode(contact_fields, name).name == "Untitled Form"


def test_encode_trims_name(contact_fields):
    assert codec.encode(contact_fields, "  Survey  ").name == "Survey"


def test_encode_is_deterministic(contact_fields):
    assert codec.encode(contact_fields, "A") == codec.encode(contact_fields, "A")


def test_document_omits_options_for_plain_fields(contact_fields):
    doc = codec.document(codec.encode(contact_fields, "Contact"))
    assert set(doc["fields"][0]) == {"id", "type", "label", "placeholder", "required"}
    assert doc["fields"][1]["options"] == ["Option 1", "Option 2"]
    assert doc["fields"][1]["type"] == "select"


def test_round_trip_preserves_fields(contact_fields):
    contact_fields.insert("email", 0)
    contact_fields.update(contact_fields.ids()[0], {"required": True, "label": "Email"})

    decoded = codec.decode(codec.encode(contact_fields, "Contact"))

    assert decoded.fields == contact_fields.fields


def test_decode_stored_document_uses_nested_fields(contact_fields):
    stored = {
        "id": "abc123",
        "name": "Contact",
        "schema": codec.document(codec.encode(contact_fields, "Contact")),
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
    }
    decoded = codec.decode(stored)
    assert decoded.ids() == contact_fields.ids()
    assert codec.schema_name(stored) == "Contact"


def test_schema_name_falls_back_to_nested_then_default():
    assert codec.schema_name({"schema": {"name": "Inner", "fields": []}}) == "Inner"
    assert codec.schema_name({"fields": []}) == "Untitled Form"


@pytest.mark.parametrize("doc", [
    {"fields": "nope"},
    {"name": "No fields"},
    {"fields": [{"type": "text"}]},
    {"fields": [{"id": "a"}]},
    {"fields": ["text"]},
    {"fields": [{"id": "a", "type": "hologram"}]},
    {"fields": [{"id": "a", "type": "text"}, {"id": "a", "type": "email"}]},
])
def test_decode_rejects_malformed(doc):
    with pytest.raises(MalformedSchema):
        codec.decode(doc)


def test_decode_fills_missing_optional_attributes():
    field_list = codec.decode({"fields": [{"id": "f1", "type": "checkbox"}]})
    field = field_list.get("f1")
    assert field.label == ""
    assert field.required is False


def test_decode_rejects_duplicate_ids_after_string_conversion():
    with pytest.raises(MalformedSchema):
        codec.decode({"fields": [{"id": "1", "type": "text"}, {"id": 1, "type": "email"}]})


def test_decode_drops_options_on_plain_fields():
    field_list = codec.decode({"fields": [{"id": "a", "type": "text", "options": ["x"]}]})
    assert field_list.get("a").options is None
    assert "options" not in codec.document(codec.encode(field_list, "Form"))["fields"][0]


@pytest.mark.parametrize("options", [[], ["Only"]])
def test_decode_rejects_choice_field_with_too_few_options(options):
    with pytest.raises(MalformedSchema):
        codec.decode({"fields": [{"id": "a", "type": "select", "options": options}]})


def test_decode_gives_default_options_to_choice_field_without_any():
    field_list = codec.decode({"fields": [{"id": "a", "type": "radio"}]})
    assert field_list.get("a").options == ("Option 1", "Option 2")


@pytest.mark.parametrize("value,expected", [("false", False), ("no", False), ("0", False), ("true", True), (1, True)])
def test_decode_parses_required(value, expected):
    field_list = codec.decode({"fields": [{"id": "a", "type": "text", "required": value}]})
    assert field_list.get("a").required is expected


def test_decode_rejects_unparseable_required():
    with pytest.raises(MalformedSchema):
        codec.decode({"fields": [{"id": "a", "type": "text", "required": "maybe"}]})
