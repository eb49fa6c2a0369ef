"""Construct the voltage model matching a parameter set."""

from __future__ import annotations

from enum import Enum

from battery_voltage.core.solver import SolverSettings
from battery_voltage.core.voltage_dynamic import VoltageDynamic
from battery_voltage.core.voltage_model import VoltageMode, VoltageModel, VoltageParameters
from battery_voltage.core.voltage_table import VoltageTable
from battery_voltage.core.voltage_vanadium import VoltageVanadiumRedox


class VoltageVariant(str, Enum):
    """Concrete voltage model implementations."""

    TABLE = "table"
    DYNAMIC = "dynamic"
    VANADIUM_REDOX = "vanadium_redox"


_registry: dict[VoltageVariant, type[VoltageModel]] = {
    VoltageVariant.TABLE: VoltageTable,
    VoltageVariant.DYNAMIC: VoltageDynamic,
    VoltageVariant.VANADIUM_REDOX: VoltageVanadiumRedox,
}


def create_voltage_model(
    params: VoltageParameters,
    variant: VoltageVariant | str | None = None,
    solver_settings: SolverSettings | None = None,
) -> VoltageModel:
    """
    Create a voltage model.

    Args:
        params: Voltage configuration
        variant: Model to build; inferred from params.voltage_choice if None
            (TABLE -> table, MODEL -> dynamic)
        solver_settings: Root finder controls

    Returns:
        Initialized voltage model

    Raises:
        ValueError: If the variant is unknown or contradicts voltage_choice
        ConfigurationError: If the parameters fail validation
    """
    mode = VoltageMode(params.voltage_choice)
    if variant is None:
        variant = VoltageVariant.TABLE if mode == VoltageMode.TABLE else VoltageVariant.DYNAMIC
    try:
        variant = VoltageVariant(variant)
    except ValueError:
        available = [v.value for v in VoltageVariant]
        raise ValueError(f"Unknown voltage model '{variant}'. Available: {available}") from None

    expected = VoltageMode.TABLE if variant == VoltageVariant.TABLE else VoltageMode.MODEL
    if mode != expected:
        raise ValueError(
            f"Voltage model '{variant.value}' requires voltage_choice={expected.value}, "
            f"got {mode.value}"
        )
    return _registry[variant](params, solver_settings)
