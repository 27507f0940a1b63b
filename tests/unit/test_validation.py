import pytest

from caffeine_lib.documents.validation import check_schema, validate_document
from caffeine_lib.errors import ValidationFailure

USER_SCHEMA = b'''{
  "type": "object",
  "properties": {
    "name": {"type": "string"},
    "age": {"type": "integer", "minimum": 0}
  },
  "required": ["name"]
}'''


def test_without_schema_only_json_syntax_is_checked():
    assert validate_document(None, b'[1, 2, 3]') == [1, 2, 3]
    with pytest.raises(ValidationFailure) as ei:
        validate_document(None, b'{"name": ')
    assert ei.value.errors[0].startswith('invalid JSON')


def test_required_property_missing():
    with pytest.raises(ValidationFailure) as ei:
        validate_document(b'{"type":"object","required":["name"]}', b'{"age":5}')
    assert "'name' is a required property" in str(ei.value)


def test_valid_document_is_returned_decoded():
    assert validate_document(USER_SCHEMA, b'{"name":"jack","age":25}') == {'name': 'jack', 'age': 25}


def test_all_violations_are_reported_together():
    with pytest.raises(ValidationFailure) as ei:
        validate_document(USER_SCHEMA, b'{"name": 7, "age": -1}')
    errors = ei.value.errors
    assert len(errors) == 2
    assert any(e.startswith('age:') for e in errors)
    assert any(e.startswith('name:') for e in errors)
    assert ei.value.to_dict()['errors'] == errors


def test_root_level_violation_location():
    with pytest.raises(ValidationFailure) as ei:
        validate_document(USER_SCHEMA, b'"just a string"')
    assert ei.value.errors[0].startswith('(root):')


def test_check_schema_rejects_non_schemas():
    with pytest.raises(ValidationFailure):
        check_schema(b'not json')
    with pytest.raises(ValidationFailure):
        check_schema(b'[1, 2]')
    with pytest.raises(ValidationFailure):
        check_schema(b'{"type": 12}')
    assert check_schema(USER_SCHEMA)['required'] == ['name']


def test_corrupt_stored_schema_rejects_writes():
    with pytest.raises(ValidationFailure):
        validate_document(b'{broken', b'{}')


def test_format_keyword_is_enforced():
    schema = b'''{
      "type": "object",
      "properties": {
        "email": {"type": "string", "format": "email"},
        "addr": {"type": "string", "format": "ipv4"}
      }
    }'''
    with pytest.raises(ValidationFailure) as ei:
        validate_document(schema, b'{"email":"not-an-email","addr":"300.1.1.1"}')
    assert [e.split(':')[0] for e in ei.value.errors] == ['addr', 'email']
    assert validate_document(schema, b'{"email":"jack@example.com","addr":"10.0.0.1"}')['addr'] == '10.0.0.1'
