"""Shared parameter/state contract for battery voltage models."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum

from battery_voltage.core.solver import SolverSettings
from battery_voltage.utils.validators import ConfigurationError

logger = logging.getLogger(__name__)

# Numerical tolerance shared by the variants (Ah, fraction of SOC)
TOLERANCE = 0.001
KELVIN_OFFSET = 273.15


class VoltageMode(str, Enum):
    """Voltage model families."""

    TABLE = "table"  # Empirical discharge curve
    MODEL = "model"  # Closed-form electrochemical model


@dataclass
class DynamicParameters:
    """
    Inputs to the Tremblay-Dube electrochemical model, on a per-cell basis.

    Attributes:
        Vfull: Fully charged voltage (V)
        Vexp: Voltage at the end of the exponential zone (V)
        Vnom: Voltage at the end of the nominal zone (V)
        Vcut: Cutoff voltage (V)
        Qfull: Full capacity (Ah)
        Qexp: Charge removed at the end of the exponential zone (Ah)
        Qnom: Charge removed at the end of the nominal zone (Ah)
        C_rate: Discharge rate used to characterize the cell (1/h)
    """

    Vfull: float = 0.0
    Vexp: float = 0.0
    Vnom: float = 0.0
    Vcut: float = 0.0
    Qfull: float = 0.0
    Qexp: float = 0.0
    Qnom: float = 0.0
    C_rate: float = 0.0


@dataclass
class VoltageParameters:
    """Configuration shared by all voltage models."""

    voltage_choice: VoltageMode = VoltageMode.MODEL
    cells_in_series: int = 1
    strings_in_parallel: int = 1
    nominal_voltage: float = 3.6  # Per-cell nominal voltage (V)
    resistance: float = 0.004  # Per-cell internal resistance (Ohm)
    timestep_hours: float = 1.0

    # Rows of [depth of discharge (%), voltage (V)], table models only
    voltage_table: list[list[float]] = field(default_factory=list)

    dynamic: DynamicParameters = field(default_factory=DynamicParameters)


@dataclass(eq=False)
class VoltageState:
    """Per-step state of a voltage model."""

    cell_voltage: float = 0.0  # Per-cell terminal voltage (V)
    full_capacity_modifier: float = 0.0  # Capacity adjusted for cutoff voltage (Ah)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VoltageState):
            return NotImplemented
        return self.cell_voltage == other.cell_voltage


class VoltageModel(ABC):
    """
    Base class for stack voltage models.

    A stack is made of `cells_in_series` cells per string and
    `strings_in_parallel` strings. All currents, charges and powers passed to
    the public methods are stack-level values; subclasses convert them to
    per-string or per-cell quantities internally.

    Sign convention: positive current and power discharge the stack, negative
    values charge it.
    """

    def __init__(self, params: VoltageParameters, solver_settings: SolverSettings | None = None):
        """
        Initialize the voltage model.

        Args:
            params: Voltage configuration, owned by this model
            solver_settings: Root finder controls (module defaults if None)
        """
        self.params = params
        self.solver_settings = solver_settings or SolverSettings()
        self.state = VoltageState(
            cell_voltage=params.nominal_voltage,
            full_capacity_modifier=params.dynamic.Qfull,
        )
        self.initialize()

    def initialize(self) -> None:
        """Validate parameters and compute derived values."""
        p = self.params
        if p.cells_in_series <= 0 or p.strings_in_parallel <= 0:
            raise ConfigurationError(
                f"Stack topology must be positive: cells_in_series={p.cells_in_series}, "
                f"strings_in_parallel={p.strings_in_parallel}"
            )
        if p.timestep_hours <= 0:
            raise ConfigurationError(f"timestep_hours ({p.timestep_hours}) must be > 0")

    @property
    def cell_voltage(self) -> float:
        """Present per-cell terminal voltage (V)."""
        return self.state.cell_voltage

    def battery_voltage(self) -> float:
        """Stack terminal voltage (V)."""
        return self.params.cells_in_series * self.state.cell_voltage

    def battery_voltage_nominal(self) -> float:
        """Stack nominal voltage (V)."""
        return self.params.cells_in_series * self.params.nominal_voltage

    def get_params(self) -> VoltageParameters:
        """Return a copy of the parameters."""
        return copy.deepcopy(self.params)

    def get_state(self) -> VoltageState:
        """Return a copy of the state."""
        return copy.copy(self.state)

    def clone(self) -> VoltageModel:
        """Return an independent copy with its own parameters and state."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """Convert parameters and state to a dictionary."""
        params = asdict(self.params)
        params["voltage_choice"] = VoltageMode(self.params.voltage_choice).value
        return {
            "model": self.__class__.__name__,
            "params": params,
            "state": {
                "cell_voltage": self.state.cell_voltage,
                "full_capacity_modifier": self.state.full_capacity_modifier,
            },
        }

    @abstractmethod
    def set_initial_soc(self, soc: float) -> None:
        """
        Seed the cell voltage from an initial state of charge.

        Args:
            soc: State of charge (0-100 %)
        """

    @abstractmethod
    def calculate_voltage_for_current(
        self, current: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        """
        Stack voltage at the given current, without changing state.

        Args:
            current: Stack current (A), positive for discharge
            q: Present stack charge (Ah)
            qmax: Stack capacity (Ah)
            temperature: Cell temperature (°C)

        Returns:
            Stack voltage (V)
        """

    @abstractmethod
    def update_voltage(
        self, q: float, qmax: float, current: float, temperature: float = 25.0, dt: float | None = None
    ) -> None:
        """
        Advance the cell voltage to reflect a new charge state.

        Args:
            q: Stack charge after the step (Ah)
            qmax: Stack capacity (Ah)
            current: Stack current during the step (A)
            temperature: Cell temperature (°C)
            dt: Step length (h), the configured timestep if None
        """

    @abstractmethod
    def calculate_max_charge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        """
        Maximum charge power over one timestep.

        Returns:
            (power in W, current in A), both negative or zero
        """

    @abstractmethod
    def calculate_max_discharge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        """
        Maximum discharge power over one timestep.

        Returns:
            (power in W, current in A), both positive or zero
        """

    @abstractmethod
    def calculate_current_for_target_w(
        self, power: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        """
        Current that delivers the requested stack power over one timestep.

        Args:
            power: Target stack power (W), positive to discharge, negative to charge
            q: Present stack charge (Ah)
            qmax: Stack capacity (Ah)
            temperature: Cell temperature (°C)

        Returns:
            Stack current (A)
        """

    def __repr__(self) -> str:
        p = self.params
        return (
            f"{self.__class__.__name__}("
            f"cells_in_series={p.cells_in_series}, "
            f"strings_in_parallel={p.strings_in_parallel}, "
            f"cell_voltage={self.state.cell_voltage:.4f}V)"
        )
