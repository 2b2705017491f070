"""
Store Registry - Discovery and registration of control stores.

This module provides the central registry for control store adapters,
handling discovery, registration, and instantiation.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, Optional, Type

from stores.base import ControlStore

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "controlsync.stores"


class StoreRegistry:
    """
    Central registry for control stores.

    Holds registered store classes, their metadata and environment
    configuration, and the initialized instances handed out to reconcilers.
    """

    def __init__(self):
        # Registered store classes (not instantiated)
        self._stores: Dict[str, Type[ControlStore]] = {}

        # Cached store metadata (name, version) to avoid repeated instantiation
        self._store_info: Dict[str, Dict[str, str]] = {}

        # Instantiated and initialized store instances
        self._instances: Dict[str, ControlStore] = {}

        # Store configurations loaded from environment
        self._store_configs: Dict[str, Dict[str, Any]] = {}

    def register_store(self, store_class: Type[ControlStore]) -> None:
        """
        Register a control store class.

        Args:
            store_class: The ControlStore subclass to register
        """
        # Create temporary instance to get name/version (only once at registration)
        temp_instance = store_class()
        name = temp_instance.name
        version = temp_instance.version

        if name in self._stores:
            logger.warning(f"Overwriting existing control store: {name}")

        self._stores[name] = store_class
        self._store_info[name] = {"name": name, "version": version}
        self._store_configs[name] = store_class.load_config_from_env()
        logger.info(f"Registered control store: {name} v{version}")

    async def get_store(
        self, name: str, config: Optional[Dict[str, Any]] = None
    ) -> ControlStore:
        """
        Get an initialized control store instance.

        Configuration from the environment is merged with ``config``, with
        ``config`` taking precedence.

        Args:
            name: The store name to retrieve
            config: Optional configuration overrides passed to initialize()

        Returns:
            An initialized ControlStore instance

        Raises:
            ValueError: If the store name is not registered
        """
        if not self.has_store(name):
            available = ", ".join(self.list_stores()) or "none"
            raise ValueError(
                f"Unknown control store: {name}. Available stores: {available}"
            )

        if name not in self._instances:
            store_config = self._store_configs.get(name, {}).copy()
            if config:
                store_config.update(config)

            store = self._stores[name]()
            await store.initialize(store_config)
            self._instances[name] = store
            logger.info(f"Initialized control store: {name}")

        return self._instances[name]

    async def close(self) -> None:
        """Close every initialized store."""
        for name, store in list(self._instances.items()):
            try:
                await store.close()
            except Exception as e:
                logger.error(f"Error closing control store '{name}': {e}")
        self._instances.clear()

    def list_stores(self) -> list[str]:
        """List all registered store names."""
        return list(self._stores.keys())

    def has_store(self, name: str) -> bool:
        """Check if a store is registered."""
        return name in self._stores

    def get_store_info(self, name: str) -> Optional[Dict[str, str]]:
        """
        Get information about a registered store.

        Args:
            name: The store name

        Returns:
            Dictionary with 'name' and 'version', or None if not found
        """
        return self._store_info.get(name)

    def get_store_config(self, name: str) -> Dict[str, Any]:
        """
        Get environment configuration for a store.

        Args:
            name: The store name

        Returns:
            Dictionary of configuration values, or empty dict if not found
        """
        return self._store_configs.get(name, {})


# Global registry instance
_registry: Optional[StoreRegistry] = None


def get_registry() -> StoreRegistry:
    """Get the global store registry singleton."""
    global _registry
    if _registry is None:
        _registry = StoreRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def register_builtin_stores() -> None:
    """
    Register the built-in stores and discover third-party stores via
    entry points.
    """
    registry = get_registry()

    try:
        from stores.securityhub import SecurityHubStore

        registry.register_store(SecurityHubStore)
    except ImportError as e:
        logger.warning(f"Could not load Security Hub store: {e}")

    try:
        from stores.securityhub_http import SecurityHubHTTPStore

        registry.register_store(SecurityHubHTTPStore)
    except ImportError as e:
        logger.warning(f"Could not load Security Hub HTTP store: {e}")

    for ep in entry_points(group=ENTRY_POINT_GROUP):
        try:
            registry.register_store(ep.load())
        except Exception as e:
            logger.warning(f"Could not load control store {ep.name}: {e}")
