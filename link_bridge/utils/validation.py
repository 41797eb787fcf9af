"""Input validation utilities for the link bridge."""

from typing import Any, Dict, Mapping

from jsonschema import validate, ValidationError as JsonSchemaValidationError

from .exceptions import ValidationError

CALLBACK_PARAMS_SCHEMA = {
    "type": "object",
    "properties": {
        "code": {"type": "string", "minLength": 1, "maxLength": 512},
        "state": {"type": "string", "minLength": 1, "maxLength": 256},
    },
    "required": ["code", "state"],
}

LOGIN_PARAMS_SCHEMA = {
    "type": "object",
    "properties": {
        "state": {"type": "string", "minLength": 1, "maxLength": 256},
    },
    "required": ["state"],
}


def validate_json_schema(data: Dict[str, Any], schema: Dict[str, Any]) -> None:
    """Validate data against JSON schema."""
    try:
        validate(instance=data, schema=schema)
    except JsonSchemaValidationError as e:
        raise ValidationError(f"Schema validation failed: {e.message}")


def _clean_params(params: Mapping[str, Any], names) -> Dict[str, str]:
    cleaned = {}
    for name in names:
        value = params.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            cleaned[name] = value
    return cleaned


def validate_callback_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """Return the trimmed ``code`` and ``state`` query parameters.

    Raises:
        ValidationError: if either parameter is missing or empty
    """
    cleaned = _clean_params(params, ("code", "state"))
    if "code" not in cleaned or "state" not in cleaned:
        raise ValidationError("Missing code or state", error_code="missing_params")
    validate_json_schema(cleaned, CALLBACK_PARAMS_SCHEMA)
    return cleaned


def validate_login_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """Return the trimmed ``state`` parameter of a login request."""
    cleaned = _clean_params(params, ("state",))
    if "state" not in cleaned:
        raise ValidationError("Missing state", error_code="missing_params")
    validate_json_schema(cleaned, LOGIN_PARAMS_SCHEMA)
    return cleaned
