"""
Core control types and dataclasses.

This module contains the typed records shared by the reconciler, the store
adapters and the CLI.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ControlStatus(Enum):
    """Two-valued status of a control in the remote store."""

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"

    @classmethod
    def from_enabled(cls, enabled: bool) -> "ControlStatus":
        return cls.ENABLED if enabled else cls.DISABLED

    @property
    def enabled(self) -> bool:
        return self is ControlStatus.ENABLED


@dataclass(frozen=True)
class ControlIdentity:
    """
    Address of one control in the remote store.

    The control ARN is the persisted identity key. The standard ARN scopes
    lookups, since the store only lists controls per standard subscription.
    """

    standard_arn: str
    control_arn: str

    def __str__(self) -> str:
        return f"{self.control_arn} ({self.standard_arn})"


@dataclass
class DesiredControlState:
    """Desired configuration of a control."""

    enabled: bool = True
    disabled_reason: Optional[str] = None


@dataclass(frozen=True)
class ControlRecord:
    """A control as reported by the remote store."""

    control_arn: str
    status: ControlStatus
    disabled_reason: Optional[str] = None


@dataclass(frozen=True)
class ObservedControlState:
    """Read-only projection of the remote record for a tracked identity."""

    status: ControlStatus
    disabled_reason: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.status.enabled

    @classmethod
    def from_record(cls, record: ControlRecord) -> "ObservedControlState":
        # A reason left behind on an enabled control is stale
        reason = None if record.status.enabled else record.disabled_reason
        return cls(status=record.status, disabled_reason=reason)


@dataclass
class ControlState:
    """
    Engine-visible state of one managed control.

    ``id`` is the persisted identity slot (the control ARN). The instance is
    tracked only when both ``id`` and ``standard_arn`` are set.
    """

    id: Optional[str] = None
    standard_arn: Optional[str] = None
    enabled: Optional[bool] = None
    disabled_reason: Optional[str] = None

    @property
    def is_tracked(self) -> bool:
        return self.identity is not None

    @property
    def identity(self) -> Optional[ControlIdentity]:
        if not self.id or not self.standard_arn:
            return None
        return ControlIdentity(standard_arn=self.standard_arn, control_arn=self.id)

    def track(self, identity: ControlIdentity) -> None:
        self.id = identity.control_arn
        self.standard_arn = identity.standard_arn

    def observe(self, observed: ObservedControlState) -> None:
        self.enabled = observed.enabled
        self.disabled_reason = observed.disabled_reason

    def clear(self) -> None:
        """Drop identity tracking and every derived attribute."""
        self.id = None
        self.standard_arn = None
        self.enabled = None
        self.disabled_reason = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "standards_arn": self.standard_arn,
            "enabled": self.enabled,
            "disabled_reason": self.disabled_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControlState":
        return cls(
            id=data.get("id") or None,
            standard_arn=data.get("standards_arn"),
            enabled=data.get("enabled"),
            disabled_reason=data.get("disabled_reason"),
        )


class PlanAction(Enum):
    """What a reconcile pass has to do to reach the desired state."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    NOOP = "noop"


@dataclass
class ControlPlan:
    """Result of comparing desired state against the last observed state."""

    action: PlanAction = PlanAction.NOOP
    identity: Optional[ControlIdentity] = None
    previous_identity: Optional[ControlIdentity] = None
    changes: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.action is not PlanAction.NOOP

    @property
    def plan_output(self) -> str:
        if not self.has_changes:
            return "No changes. Control is up to date."
        header = f"{self.action.value}: {self.identity}"
        return "\n".join([header] + [f"  {line}" for line in self.changes])
