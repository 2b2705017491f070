"""
Error types raised while reconciling a control.

Remote failures are wrapped with the control identity and the attempted
status so the caller can log and retry at its own layer. A control that is
gone from the store is not an error: refresh() returns None instead.
"""

from typing import Optional

from models import ControlIdentity, ControlStatus


class ControlSyncError(Exception):
    """Base class for all reconciler errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidDesiredState(ControlSyncError):
    """Raised when desired state or an identifier cannot be used as given."""


class ControlStoreError(ControlSyncError):
    """Raised by store adapters when a remote call is rejected or fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteUpdateFailed(ControlSyncError):
    """Raised when the mutating call to the remote store fails."""

    action = "setting"

    def __init__(
        self,
        identity: ControlIdentity,
        status: ControlStatus,
        cause: Exception,
    ):
        self.identity = identity
        self.status = status
        self.cause = cause
        super().__init__(
            f"Error {self.action} standards control {identity.control_arn} "
            f"to {status.value}: {cause}"
        )


class RemoteResetFailed(RemoteUpdateFailed):
    """Raised when resetting a control to its enabled baseline fails."""

    action = "resetting"


class RemoteLookupFailed(ControlSyncError):
    """Raised when the remote store cannot be queried."""

    def __init__(self, identity: ControlIdentity, cause: Exception):
        self.identity = identity
        self.cause = cause
        super().__init__(
            f"Error reading standards control {identity.control_arn}: {cause}"
        )


class RemoteLookupAmbiguous(ControlSyncError):
    """Raised when more than one remote record matches a single identity."""

    def __init__(self, identity: ControlIdentity, matches: int):
        self.identity = identity
        self.matches = matches
        super().__init__(
            f"Found {matches} standards controls matching {identity.control_arn} "
            f"in {identity.standard_arn}, expected exactly one"
        )
