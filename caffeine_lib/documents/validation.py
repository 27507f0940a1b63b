"""Validation gate run before every write to a data namespace.

The gate is a pure function of (schema or None, candidate bytes): without a
schema the candidate only has to be valid JSON, with one it must also
satisfy every rule of the schema. All violations are reported together.
"""
from __future__ import annotations
import logging
from typing import Any, List, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from caffeine_lib.errors import ValidationFailure
from .payload import decode, decode_submitted

logger = logging.getLogger(__name__)


def _location(error) -> str:
    path = "/".join(str(p) for p in error.absolute_path)
    return path or "(root)"


def check_schema(raw: bytes) -> Any:
    """Decode `raw` and make sure it is a usable JSON schema document."""
    schema = decode_submitted(raw)
    if not isinstance(schema, (dict, bool)):
        raise ValidationFailure(["schema must be a JSON object"])
    cls = validator_for(schema, default=Draft7Validator)
    try:
        cls.check_schema(schema)
    except SchemaError as e:
        raise ValidationFailure([f"invalid schema: {e.message}"]) from e
    return schema


def validate_document(schema_raw: Optional[bytes], candidate: bytes) -> Any:
    """Return the decoded candidate or raise `ValidationFailure`."""
    document = decode_submitted(candidate)
    if schema_raw is None:
        return document

    try:
        schema = decode(schema_raw)
    except ValueError as e:
        raise ValidationFailure([f"stored schema is not valid JSON: {e}"]) from e
    if not isinstance(schema, (dict, bool)):
        raise ValidationFailure(["stored schema must be a JSON object"])
    cls = validator_for(schema, default=Draft7Validator)
    try:
        validator = cls(schema, format_checker=cls.FORMAT_CHECKER)
        errors = sorted(validator.iter_errors(document), key=lambda e: (_location(e), e.message))
    except SchemaError as e:
        raise ValidationFailure([f"invalid schema: {e.message}"]) from e

    if errors:
        messages: List[str] = [f"{_location(e)}: {e.message}" for e in errors]
        logger.info("Document rejected by schema: %s", "; ".join(messages))
        raise ValidationFailure(messages)
    return document
