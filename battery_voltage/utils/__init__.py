"""Utility modules for battery voltage models."""

from battery_voltage.utils.config_loader import (
    VoltageConfigModel,
    build_voltage_model,
    load_config,
    save_config,
)
from battery_voltage.utils.validators import (
    ConfigurationError,
    ConnectionMismatchError,
    ValidationError,
)

__all__ = [
    "load_config",
    "save_config",
    "build_voltage_model",
    "VoltageConfigModel",
    "ValidationError",
    "ConfigurationError",
    "ConnectionMismatchError",
]
