"""
Control store adapters.

A control store performs the remote read and update calls for the
reconciler. Third-party stores are discovered via Python entry points
(group: 'controlsync.stores').
"""

from stores.base import ControlStore
from stores.registry import StoreRegistry, get_registry, register_builtin_stores

__all__ = ["ControlStore", "StoreRegistry", "get_registry", "register_builtin_stores"]
