"""
Desired-state validation - JSON Schema checks for control documents.

A control document declares one standards control:

    standards_arn: arn:aws:securityhub:...:subscription/...
    standards_control_arn: arn:aws:securityhub:...:control/...
    enabled: false
    disabled_reason: Not applicable to this account
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

from errors import InvalidDesiredState
from models import ControlIdentity, DesiredControlState

logger = logging.getLogger(__name__)

CONTROL_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["standards_arn", "standards_control_arn"],
    "properties": {
        "standards_arn": {"type": "string", "minLength": 1, "pattern": "^arn:"},
        "standards_control_arn": {
            "type": "string",
            "minLength": 1,
            "pattern": "^arn:",
        },
        "enabled": {"type": "boolean", "default": True},
        "disabled_reason": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}


def validate_document(
    document: Any, schema: Dict[str, Any] = CONTROL_DOCUMENT_SCHEMA
) -> Tuple[bool, Optional[str]]:
    """
    Validate a control document against a JSON Schema.

    Args:
        document: The parsed document
        schema: The JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(schema)
        errors = sorted(
            validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]
        )

        if not errors:
            return True, None

        # Collect all validation errors
        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"


def parse_document(
    document: Any,
) -> Tuple[ControlIdentity, DesiredControlState]:
    """
    Turn a control document into an identity and desired state.

    Raises:
        InvalidDesiredState: If the document does not match the schema
    """
    is_valid, error = validate_document(document)
    if not is_valid:
        raise InvalidDesiredState(f"Invalid control document: {error}")

    identity = ControlIdentity(
        standard_arn=document["standards_arn"],
        control_arn=document["standards_control_arn"],
    )
    desired = DesiredControlState(
        enabled=document.get("enabled", True),
        disabled_reason=document.get("disabled_reason") or None,
    )
    return identity, desired
