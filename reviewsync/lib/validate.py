"""
JSON Schema checks for the review document.

The document is checked against schemas/review.schema.json when it is read
from disk and again before every write. The same schema file is what the
external agent is told to follow when it edits review.json directly.
"""

import json
from functools import lru_cache
from pathlib import Path

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from reviewsync.lib.errors import ValidationError

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


@lru_cache(maxsize=None)
def get_validator(schema_name: str) -> Draft7Validator:
    """Compiled validator for schemas/<schema_name>.schema.json."""
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ValidationError(f"[{schema_name}] Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def validate(data: dict, schema_name: str) -> None:
    """
    Check data against a named schema.

    Reports the most relevant error only (jsonschema's best_match), with
    its dotted location in the document.

    Raises:
        ValidationError: If data doesn't match the schema
    """
    error = best_match(get_validator(schema_name).iter_errors(data))
    if error is None:
        return
    path = ".".join(str(p) for p in error.absolute_path) or "(root)"
    raise ValidationError(f"[{schema_name}] {error.message}", path)


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """
    Refuse to persist a document that the agent would not be able to read.

    Raises:
        ValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(f"Refusing to write invalid data to {filepath}: {e}") from None
