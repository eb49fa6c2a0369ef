"""Base chemistry class for voltage model presets."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from battery_voltage.core.voltage_model import DynamicParameters, VoltageMode, VoltageParameters


@dataclass
class BaseChemistry(ABC):
    """
    Abstract base class for cell chemistry presets.

    A preset carries the per-cell values needed by one or more voltage models:
    - Nominal voltage and internal resistance
    - Discharge table of [depth of discharge (%), voltage (V)] rows
    - Tremblay model inputs
    - Whether it is a vanadium redox flow stack
    """

    # Chemistry identification
    name: str = field(default="BaseChemistry", init=False)
    description: str = field(default="", init=False)

    voltage_nominal: float = field(default=3.6, init=False)  # V
    resistance: float = field(default=0.01, init=False)  # Ohm
    capacity: float = field(default=3.0, init=False)  # Ah per cell

    voltage_table: list[list[float]] = field(default_factory=list, init=False)
    dynamic: Optional[DynamicParameters] = field(default=None, init=False)
    flow_battery: bool = field(default=False, init=False)  # Vanadium redox stack

    # Model used when none is requested
    default_model: str = field(default="table", init=False)

    def __post_init__(self):
        """Initialize chemistry-specific parameters."""
        self._init_parameters()

    @abstractmethod
    def _init_parameters(self) -> None:
        """Initialize chemistry-specific parameters. Must be implemented by subclasses."""
        pass

    @property
    def supported_models(self) -> list[str]:
        models = []
        if self.voltage_table:
            models.append("table")
        if self.dynamic is not None:
            models.append("dynamic")
        if self.flow_battery:
            models.append("vanadium_redox")
        return models

    def to_voltage_parameters(
        self,
        model: Optional[str] = None,
        cells_in_series: int = 1,
        strings_in_parallel: int = 1,
        timestep_hours: float = 1.0,
    ) -> VoltageParameters:
        """
        Build voltage parameters from this preset.

        Args:
            model: 'table', 'dynamic' or 'vanadium_redox' (default_model if None)
            cells_in_series: Cells per string
            strings_in_parallel: Parallel strings
            timestep_hours: Timestep (h)

        Returns:
            Voltage parameters for the requested model

        Raises:
            ValueError: If this preset has no data for the requested model
        """
        model = (model or self.default_model).lower()
        if model not in self.supported_models:
            raise ValueError(
                f"Chemistry '{self.name}' does not support the '{model}' model. "
                f"Available: {self.supported_models}"
            )
        return VoltageParameters(
            voltage_choice=VoltageMode.TABLE if model == "table" else VoltageMode.MODEL,
            cells_in_series=cells_in_series,
            strings_in_parallel=strings_in_parallel,
            nominal_voltage=self.voltage_nominal,
            resistance=self.resistance,
            timestep_hours=timestep_hours,
            voltage_table=copy.deepcopy(self.voltage_table) if model == "table" else [],
            dynamic=copy.deepcopy(self.dynamic) if model == "dynamic" else DynamicParameters(),
        )

    def validate(self) -> list[str]:
        """
        Validate chemistry parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.voltage_nominal <= 0:
            errors.append(f"voltage_nominal ({self.voltage_nominal}) must be > 0")

        if self.resistance < 0:
            errors.append(f"resistance ({self.resistance}) must be >= 0")

        if self.capacity <= 0:
            errors.append(f"capacity ({self.capacity}) must be > 0")

        if self.voltage_table and len(self.voltage_table) < 2:
            errors.append("voltage_table must have at least 2 points")

        if not self.supported_models:
            errors.append("chemistry must define a voltage table or dynamic parameters")

        return errors

    def to_dict(self) -> dict:
        """Convert chemistry to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "voltage_nominal": self.voltage_nominal,
            "resistance": self.resistance,
            "capacity": self.capacity,
            "default_model": self.default_model,
            "supported_models": self.supported_models,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name='{self.name}', "
            f"voltage_nominal={self.voltage_nominal}V, "
            f"models={self.supported_models})"
        )
