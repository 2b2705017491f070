"""
Control Store Base - Abstract interface for remote control stores.

A control store is the client side of the remote control plane. It performs
the actual read and update calls; the reconciler never talks to the network
itself. The default shipped stores speak AWS Security Hub, through boto3 or
directly over its REST API.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from models import ControlRecord, ControlStatus


class ControlStore(ABC):
    """
    Abstract base class for control stores.

    Implementations translate between the closed ControlStatus enumeration
    and the store's wire format and raise ControlStoreError for every
    rejected or failed call. Retry and timeout policy live here too.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this store (e.g., 'securityhub')."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Store adapter version string."""
        pass

    @abstractmethod
    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the store with configuration.

        Called once when the store is loaded. Use this to set up clients
        and validate configuration.

        Args:
            config: Store-specific configuration dictionary
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        control_arn: str,
        standard_arn: str,
        status: ControlStatus,
        disabled_reason: Optional[str] = None,
    ) -> ControlRecord:
        """
        Set the status of a single control.

        Args:
            control_arn: The control to update
            standard_arn: The standard subscription the control belongs to
            status: Target status
            disabled_reason: Reason for disabling, None when enabling

        Returns:
            The updated control record.

        Raises:
            ControlStoreError: If the update is rejected or fails in transport
        """
        pass

    @abstractmethod
    async def query_by_standard(
        self, standard_arn: str, control_arn: Optional[str] = None
    ) -> List[ControlRecord]:
        """
        List the controls of a standard subscription.

        Args:
            standard_arn: The standard subscription to list
            control_arn: Optional hint; stores may use it to narrow the result

        Returns:
            Control records. Callers must still match on control_arn.

        Raises:
            ControlStoreError: If the query is rejected or fails in transport
        """
        pass

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """
        Load store-specific configuration from environment variables.

        Override this method in subclasses to define how the store loads
        its configuration from the environment.

        Returns:
            Dictionary of configuration values for this store.
        """
        return {}
