import pytest

from formbuilder import codec
from formbuilder.errors import SubmissionInProgress, TransportError
from formbuilder.fields import FieldList
from formbuilder.preview import PreviewSession, PreviewState, build_submission, validate
from formbuilder.schemas import FieldType


class RecordingSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def submit(self, schema_id, values):
        self.calls.append((schema_id, values))
        if self.fail:
            raise TransportError("store unavailable")
        return {"submissionId": f"sub-{len(self.calls)}", "submittedAt": "2024-01-01T00:00:00Z"}


def required_text():
    field_list = FieldList.create()
    field_id = field_list.insert("text")
    field_list.update(field_id, {"required": True})
    return field_list, field_id


def email_field(required=False):
    field_list = FieldList.create()
    field_id = field_list.insert("email")
    field_list.update(field_id, {"required": required})
    return field_list, field_id


def test_required_text_field_error_then_cleared():
    field_list, field_id = required_text()
    assert validate(field_list, {}) == {field_id: "Text Field is required"}

    session = PreviewSession()
    session.validate(field_list)
    assert field_id in session.errors

    session.set_value(field_id, "hello")
    assert field_id not in session.errors
    assert validate(field_list, session.values) == {}


@pytest.mark.parametrize("value", [None, "", False])
def test_empty_values_fail_required(value):
    field_list, field_id = required_text()
    assert field_id in validate(field_list, {field_id: value})


def test_required_checkbox_must_be_checked():
    field_list = FieldList.create()
    field_id = field_list.insert("checkbox")
    field_list.update(field_id, {"required": True})
    assert validate(field_list, {field_id: False}) == {field_id: "Checkbox Field is required"}
    assert validate(field_list, {field_id: True}) == {}


def test_invalid_email_fails():
    field_list, field_id = email_field()
    assert validate(field_list, {field_id: "not-an-email"}) == {
        field_id: "Please enter a valid email address"
    }


def test_valid_email_passes():
    field_list, field_id = email_field()
    assert validate(field_list, {field_id: "a@b.co"}) == {}


def test_empty_optional_email_passes():
    field_list, field_id = email_field()
    assert validate(field_list, {field_id: ""}) == {}


def test_required_email_empty_reports_required():
    field_list, field_id = email_field(required=True)
    assert validate(field_list, {}) == {field_id: "Email Field is required"}


def test_number_and_date_are_not_format_checked():
    field_list = FieldList.create()
    number_id = field_list.insert("number")
    date_id = field_list.insert("date")
    assert validate(field_list, {number_id: "abc", date_id: "someday"}) == {}


def test_validate_accepts_schema():
    field_list, field_id = required_text()
    schema = codec.encode(field_list, "Form")
    assert validate(schema, {}) == {field_id: "Text Field is required"}


def test_set_value_clears_only_that_field_error():
    field_list = FieldList.create()
    first = field_list.insert("text")
    second = field_list.insert("email")
    for field_id in (first, second):
        field_list.update(field_id, {"required": True})

    session = PreviewSession()
    session.validate(field_list)
    session.set_value(first, "x")
    assert session.errors == {second: "Email Field is required"}


def test_build_submission_copies_values():
    values = {"a": "1"}
    request = build_submission("schema-1", values)
    request.values["a"] = "changed"
    assert values == {"a": "1"}
    assert request.schema_id == "schema-1"


def test_submit_with_errors_does_not_reach_sink():
    field_list, field_id = required_text()
    session = PreviewSession()
    sink = RecordingSink()

    outcome = session.submit(field_list, "schema-1", sink)

    assert outcome.ok is False
    assert outcome.errors == {field_id: "Text Field is required"}
    assert session.state == PreviewState.EDITING_WITH_ERRORS
    assert sink.calls == []


def test_successful_submit_resets_session():
    field_list, field_id = required_text()
    session = PreviewSession()
    session.set_value(field_id, "hello")
    sink = RecordingSink()

    outcome = session.submit(field_list, "schema-1", sink)

    assert outcome.ok is True
    assert outcome.receipt["submissionId"] == "sub-1"
    assert sink.calls == [("schema-1", {field_id: "hello"})]
    assert session.values == {}
    assert session.errors == {}
    assert session.submitting is False
    assert session.state == PreviewState.SUBMITTED


def test_failed_submit_keeps_values_for_retry():
    field_list, field_id = required_text()
    session = PreviewSession()
    session.set_value(field_id, "hello")

    outcome = session.submit(field_list, None, RecordingSink(fail=True))

    assert outcome.ok is False
    assert outcome.errors == {}
    assert outcome.notice == "Failed to submit form"
    assert session.values == {field_id: "hello"}
    assert session.errors == {}
    assert session.submitting is False


def test_submit_while_in_flight_is_refused():
    field_list, field_id = required_text()
    session = PreviewSession()
    session.set_value(field_id, "hello")
    session.submitting = True

    with pytest.raises(SubmissionInProgress):
        session.submit(field_list, None, RecordingSink())


def test_email_with_trailing_newline_fails():
    field_list, field_id = email_field()
    assert validate(field_list, {field_id: "a@b.co\n"}) == {
        field_id: "Please enter a valid email address"
    }


def test_input_shapes_cover_every_field_type():
    field_list = FieldList.create()
    for field_type in FieldType:
        field_list.insert(field_type)

    shapes = PreviewSession(field_list).render()

    assert [shape["type"] for shape in shapes] == [field_type.value for field_type in FieldType]
    by_type = {shape["type"]: shape for shape in shapes}
    assert by_type["checkbox"]["valueKind"] == "boolean"
    assert by_type["checkbox"]["value"] is False
    assert by_type["file"]["valueKind"] == "file_name"
    assert by_type["email"]["inputType"] == "email"
    assert by_type["select"]["options"] == ["Option 1", "Option 2"]
    assert by_type["text"]["value"] == ""


@pytest.mark.parametrize("value,expected", [(True, True), ("true", True), (False, False), ("on", False), (None, False)])
def test_checkbox_values_are_booleans(value, expected):
    field_list = FieldList.create()
    field_id = field_list.insert("checkbox")
    session = PreviewSession(field_list)

    session.set_value(field_id, value)

    assert session.values[field_id] is expected


class Upload:
    filename = "cv.pdf"


def test_file_values_keep_only_the_file_name():
    field_list = FieldList.create()
    field_id = field_list.insert("file")
    session = PreviewSession(field_list)

    session.set_value(field_id, Upload())
    assert session.values[field_id] == "cv.pdf"

    session.set_value(field_id, "/tmp/uploads/photo.png")
    assert session.values[field_id] == "photo.png"


def test_render_reports_value_and_error():
    field_list, field_id = required_text()
    session = PreviewSession(field_list)
    session.validate(field_list)
    assert session.render()[0]["error"] == "Text Field is required"

    session.set_value(field_id, "hello")
    shape = session.render()[0]
    assert shape["value"] == "hello"
    assert shape["error"] is None
