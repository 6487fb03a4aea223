"""
Schema validation for WorkTree.

Config files and STATE rows are checked against the JSON Schemas shipped in
worktree/schemas before they are used or written. Every violation is
reported, each one located by config key or by STATE row and step.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema

from .errors import WorkTreeError


class ValidationError(WorkTreeError):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.reason = message
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


# Validators are built once per schema file; the files never change at runtime
_validator_cache: dict = {}


def _get_schemas_dir() -> Path:
    return Path(__file__).parent.parent / "schemas"


def _get_validator(schema_name: str):
    if schema_name not in _validator_cache:
        schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
        _validator_cache[schema_name] = validator_cls(schema)
    return _validator_cache[schema_name]


def _locate(data: Any, absolute_path) -> str:
    """Human-readable location of a schema violation.

    STATE rows are a list of dicts, so [2, "label"] becomes
    "row 3 (step 1.4) label". Anything else is rendered as a dotted key path.
    """
    parts = list(absolute_path)
    if not parts:
        return "(root)"

    if isinstance(data, list) and isinstance(parts[0], int):
        index, rest = parts[0], parts[1:]
        where = f"row {index + 1}"
        row = data[index] if index < len(data) else None
        if isinstance(row, dict) and "phase" in row and "step" in row:
            where += f" (step {row['phase']}.{row['step']})"
        return " ".join([where, *(str(p) for p in rest)])

    location = ""
    for part in parts:
        location += f"[{part}]" if isinstance(part, int) else (f".{part}" if location else str(part))
    return location


def _sort_key(error) -> list:
    return [(0, p, "") if isinstance(p, int) else (1, 0, str(p)) for p in error.absolute_path]


def validate(data: Any, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Value to validate
        schema_name: Schema name ("config" or "state")

    Raises:
        ValidationError: listing every violation, first one's location in .path
    """
    validator = _get_validator(schema_name)
    errors = sorted(validator.iter_errors(data), key=_sort_key)
    if not errors:
        return

    located = [(_locate(data, e.absolute_path), e.message) for e in errors]
    if len(located) == 1:
        path, message = located[0]
        raise ValidationError(schema_name, message, path)

    details = "; ".join(f"{path}: {message}" for path, message in located)
    raise ValidationError(schema_name, f"{len(located)} problems: {details}", located[0][0])


def validate_before_write(data: Any, schema_name: str, filepath: Path) -> None:
    """
    Validate data before writing to file. Ensures we never write invalid data.

    Raises:
        ValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {filepath}: {e.reason}",
            e.path,
        ) from None
