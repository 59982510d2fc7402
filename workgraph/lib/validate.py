"""
Schema checks for data workgraph writes.

Frontmatter is read leniently (see index.parser) but every attribute
block the service writes, and every workgraph.yaml it loads, must match
its schema in workgraph/schemas/<name>.schema.json.
"""

import json
from pathlib import Path
from typing import Optional

import jsonschema

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


class ValidationError(Exception):
    """Data doesn't match a schema.

    `path` is the dotted location of the first offending value, or
    "(root)" for problems with the mapping itself.
    """

    def __init__(self, schema_name: str, message: str, path: Optional[str] = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


_validators: dict[str, jsonschema.Draft7Validator] = {}


def _validator(schema_name: str) -> jsonschema.Draft7Validator:
    validator = _validators.get(schema_name)
    if validator is None:
        schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
        validator = jsonschema.Draft7Validator(json.loads(schema_path.read_text()))
        _validators[schema_name] = validator
    return validator


def _location(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str) -> None:
    """Check data against the named schema ("entity" or "settings").

    All violations are reported in one message, ordered by location.

    Raises:
        ValidationError: If the data doesn't match
    """
    errors = sorted(_validator(schema_name).iter_errors(data), key=_location)
    if not errors:
        return
    message = "; ".join(
        e.message if i == 0 else f"{e.message} at {_location(e)}"
        for i, e in enumerate(errors)
    )
    raise ValidationError(schema_name, message, _location(errors[0]))


def validate_before_write(data: dict, schema_name: str, target: str) -> None:
    """validate(), with the document about to be written named in the error."""
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {target}: {e}",
        ) from None
