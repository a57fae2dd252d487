"""
strongbox configuration.

Provides the StoreConfig model and its loader.
"""

from strongbox.config.loader import ConfigurationError, load_config
from strongbox.config.schema import AuditConfig, StoreConfig

__all__ = [
    "AuditConfig",
    "ConfigurationError",
    "StoreConfig",
    "load_config",
]
