"""
Configuration module for controlsync.

Loads configuration from environment variables. Store adapters load their
own settings (see ControlStore.load_config_from_env); STORE_CONFIGS can
override them per store.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class StoreConfig:
    """Remote control store selection."""

    backend: str = "securityhub"

    # Store-specific overrides keyed by store name
    store_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        store_configs = {}
        if os.getenv("STORE_CONFIGS"):
            try:
                store_configs = json.loads(os.getenv("STORE_CONFIGS"))
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring STORE_CONFIGS, not valid JSON: {e}")

        return cls(
            backend=os.getenv("CONTROL_STORE", "securityhub"),
            store_configs=store_configs,
        )

    def get_store_config(self, store_name: str) -> Dict[str, Any]:
        """Get configuration overrides for a specific store."""
        return self.store_configs.get(store_name, {})


@dataclass
class StateConfig:
    """Where the managed control's state is persisted."""

    path: str = "controlsync.state.json"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(path=os.getenv("CONTROLSYNC_STATE_FILE", "controlsync.state.json"))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            format=os.getenv("LOG_FORMAT", DEFAULT_LOG_FORMAT),
        )

    def configure(self) -> None:
        """Apply this configuration to the root logger."""
        logging.basicConfig(level=self.level, format=self.format)


@dataclass
class Config:
    """Main configuration object."""

    store: StoreConfig
    state: StateConfig
    logging: LoggingConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            store=StoreConfig.from_env(),
            state=StateConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            store=StoreConfig(),
            state=StateConfig(),
            logging=LoggingConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
