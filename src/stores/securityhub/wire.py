"""Marshaling between Security Hub control documents and ControlRecord."""

from typing import Any, Dict, Optional

from errors import ControlStoreError
from models import ControlRecord, ControlStatus


def to_record(control: Dict[str, Any]) -> ControlRecord:
    """Build a ControlRecord from a Security Hub ``StandardsControl`` document."""
    try:
        status = ControlStatus(control.get("ControlStatus"))
    except ValueError as e:
        raise ControlStoreError(
            f"Unexpected control status {control.get('ControlStatus')!r} "
            f"for {control.get('StandardsControlArn')}"
        ) from e

    return ControlRecord(
        control_arn=control.get("StandardsControlArn", ""),
        status=status,
        disabled_reason=control.get("DisabledReason") or None,
    )


def update_payload(status: ControlStatus, disabled_reason: Optional[str]) -> Dict[str, str]:
    """Body fields of an UpdateStandardsControl request."""
    payload = {"ControlStatus": status.value}
    if disabled_reason:
        payload["DisabledReason"] = disabled_reason
    return payload
