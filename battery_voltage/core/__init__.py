"""Core voltage model modules."""

from battery_voltage.core.factory import VoltageVariant, create_voltage_model
from battery_voltage.core.resilience import Connection, OutageBattery, ResilienceRunner
from battery_voltage.core.solver import SolverResult, SolverSettings, newton
from battery_voltage.core.voltage_dynamic import VoltageDynamic
from battery_voltage.core.voltage_model import (
    DynamicParameters,
    VoltageMode,
    VoltageModel,
    VoltageParameters,
    VoltageState,
)
from battery_voltage.core.voltage_table import VoltageTable
from battery_voltage.core.voltage_vanadium import VoltageVanadiumRedox

__all__ = [
    "newton",
    "SolverResult",
    "SolverSettings",
    "VoltageMode",
    "VoltageParameters",
    "DynamicParameters",
    "VoltageState",
    "VoltageModel",
    "VoltageTable",
    "VoltageDynamic",
    "VoltageVanadiumRedox",
    "VoltageVariant",
    "create_voltage_model",
    "Connection",
    "OutageBattery",
    "ResilienceRunner",
]
