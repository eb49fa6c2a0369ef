"""Piecewise-linear voltage model driven by an empirical discharge table."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from battery_voltage.core.solver import SolverSettings
from battery_voltage.core.voltage_model import VoltageMode, VoltageModel, VoltageParameters
from battery_voltage.utils.validators import (
    ConfigurationError,
    raise_on_failure,
    validate_voltage_table,
)

logger = logging.getLogger(__name__)

MIN_SLOPE = 1e-7


def calc_dod(q: float, qmax: float) -> float:
    """Depth of discharge (%) from present charge and capacity."""
    return (1.0 - q / qmax) * 100.0


class VoltageTable(VoltageModel):
    """
    Voltage model that interpolates a depth-of-discharge vs voltage table.

    The table is sorted by descending voltage and each pair of adjacent rows
    defines a line V = slope * DOD + intercept. Queries below the first
    breakpoint return the first voltage; queries past the last breakpoint
    extrapolate the last segment.
    """

    def __init__(self, params: VoltageParameters, solver_settings: SolverSettings | None = None):
        self._table: np.ndarray = np.empty((0, 2))
        self.slopes: list[float] = []
        self.intercepts: list[float] = []
        super().__init__(params, solver_settings)

    @classmethod
    def from_values(
        cls,
        cells_in_series: int,
        strings_in_parallel: int,
        voltage: float,
        voltage_table: Sequence[Sequence[float]],
        resistance: float,
        dt_hour: float,
    ) -> VoltageTable:
        """
        Build a table model from raw construction arguments.

        Args:
            cells_in_series: Cells per string
            strings_in_parallel: Parallel strings
            voltage: Per-cell nominal voltage (V)
            voltage_table: Rows of [DOD (%), voltage (V)]
            resistance: Per-cell resistance (Ohm)
            dt_hour: Timestep (h)
        """
        params = VoltageParameters(
            voltage_choice=VoltageMode.TABLE,
            cells_in_series=cells_in_series,
            strings_in_parallel=strings_in_parallel,
            nominal_voltage=voltage,
            resistance=resistance,
            timestep_hours=dt_hour,
            voltage_table=[list(map(float, row)) for row in voltage_table],
        )
        return cls(params)

    def initialize(self) -> None:
        """Sort the table and precompute line segments between its rows."""
        super().initialize()
        raise_on_failure(validate_voltage_table(self.params.voltage_table), "voltage_table_t")

        table = sorted(self.params.voltage_table, key=lambda row: row[1], reverse=True)
        nominal = self.params.nominal_voltage
        self.slopes = []
        self.intercepts = []

        for i, (dod, voltage) in enumerate(table):
            slope = 0.0
            intercept = voltage
            if i > 0:
                dod0, v0 = table[i - 1]
                if dod == dod0:
                    raise ConfigurationError(
                        "voltage_table_t error: Battery voltage matrix cannot have two identical "
                        "depths of discharge."
                    )
                slope = (voltage - v0) / (dod - dod0)
                intercept = v0 - slope * dod0
                if abs(slope) < MIN_SLOPE:
                    raise ConfigurationError(
                        "voltage_table_t error: Battery voltage matrix cannot have two identical voltages."
                    )
            self.slopes.append(slope)
            self.intercepts.append(intercept)

        if not any(row[1] < nominal for row in table):
            raise ConfigurationError(
                "voltage_table_t error: Voltage table contains no voltages less than the nominal voltage. "
                "Change either the values in the voltage table or the nominal voltage."
            )
        if not any(row[1] > nominal for row in table):
            raise ConfigurationError(
                "voltage_table_t error: Voltage table contains no voltages greater than nominal voltage. "
                "Change either the values in the voltage table or the nominal voltage."
            )

        # for extrapolation beyond the last row
        self.slopes.append(self.slopes[-1])
        self.intercepts.append(self.intercepts[-1])
        self._table = np.asarray(table, dtype=float)
        logger.debug("Voltage table initialized with %d segments", len(self.slopes))

    def _segment_index(self, dod: float) -> int:
        row = 0
        while row < len(self._table) and dod > self._table[row, 0]:
            row += 1
        return row

    def _segment_bounds(self, i: int) -> tuple[float, float]:
        """DOD range (%) over which segment i is used, limited to [0, 100]."""
        n = len(self._table)
        lower = 0.0 if i == 0 else float(self._table[i - 1, 0])
        upper = 100.0 if i >= n else float(self._table[i, 0])
        return max(0.0, lower), min(100.0, upper)

    def calculate_voltage(self, dod: float) -> float:
        """
        Per-cell voltage at a depth of discharge.

        Args:
            dod: Depth of discharge (%), clamped to [0, 100]

        Returns:
            Cell voltage (V), never negative
        """
        dod = min(max(dod, 0.0), 100.0)
        row = self._segment_index(dod)
        return max(self.slopes[row] * dod + self.intercepts[row], 0.0)

    def set_initial_soc(self, soc: float) -> None:
        self.state.cell_voltage = self.calculate_voltage(100.0 - soc)

    def calculate_voltage_for_current(
        self, current: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        dod = calc_dod(q - current * self.params.timestep_hours, qmax)
        return self.calculate_voltage(dod) * self.params.cells_in_series

    def update_voltage(
        self, q: float, qmax: float, current: float, temperature: float = 25.0, dt: float | None = None
    ) -> None:
        self.state.cell_voltage = self.calculate_voltage(calc_dod(q, qmax))

    def calculate_max_charge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        current = (q - qmax) / self.params.timestep_hours
        return self.calculate_voltage(0.0) * current * self.params.cells_in_series, current

    def _current_for_dod(self, dod: float, q: float, qmax: float) -> float:
        return qmax * (dod - calc_dod(q, qmax)) / 100.0 / self.params.timestep_hours

    def calculate_max_discharge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        """
        Maximum discharge power over one timestep.

        Within segment i the stack power is (A + B*DOD)(slope*DOD + intercept)/dt
        with A = q - qmax and B = qmax/100, a quadratic in DOD whose stationary
        point is -(A*slope + B*intercept) / (2*B*slope). Candidates are those
        stationary points and the segment end points.
        """
        dod0 = calc_dod(q, qmax)
        a = q - qmax
        b = qmax / 100.0

        candidates = [100.0]
        for i, (slope, intercept) in enumerate(zip(self.slopes, self.intercepts)):
            lower, upper = self._segment_bounds(i)
            candidates.extend([lower, upper])
            if slope != 0.0:
                dod = -(a * slope + b * intercept) / (2.0 * b * slope)
                if lower <= dod <= upper:
                    candidates.append(dod)

        max_p = 0.0
        max_i = 0.0
        for dod in candidates:
            if dod < dod0:
                continue
            current = self._current_for_dod(dod, q, qmax)
            p = self.calculate_voltage(dod) * current
            if p > max_p:
                max_p = p
                max_i = current
        return max_p * self.params.cells_in_series, max(0.0, max_i)

    def calculate_current_for_target_w(
        self, power: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        if power == 0:
            return 0.0
        if power < 0:
            max_p, current = self.calculate_max_charge_w(q, qmax, temperature)
        else:
            max_p, current = self.calculate_max_discharge_w(q, qmax, temperature)

        if abs(max_p) <= abs(power):
            return current

        dod0 = calc_dod(q, qmax)
        target = power / self.params.cells_in_series * self.params.timestep_hours
        a_q = q - qmax
        b_q = qmax / 100.0

        # (A + B*DOD)(slope*DOD + intercept) = P*dt for each segment
        best_dod = None
        for i, (slope, intercept) in enumerate(zip(self.slopes, self.intercepts)):
            lower, upper = self._segment_bounds(i)
            if power > 0:
                lower = max(lower, dod0)
            else:
                upper = min(upper, dod0)
            if lower > upper:
                continue

            a = b_q * slope
            b = a_q * slope + b_q * intercept
            c = a_q * intercept - target
            if a == 0.0:
                roots = [-c / b] if b != 0.0 else []
            else:
                disc = b * b - 4.0 * a * c
                if disc < 0.0:
                    continue
                sqrt_disc = math.sqrt(disc)
                roots = [(-b + sqrt_disc) / (2.0 * a), (-b - sqrt_disc) / (2.0 * a)]

            for dod in roots:
                if lower <= dod <= upper and (best_dod is None or abs(dod - dod0) < abs(best_dod - dod0)):
                    best_dod = dod

        if best_dod is None:
            logger.warning("No table segment delivers %.3f W; using the limiting current", power)
            return current
        return self._current_for_dod(best_dod, q, qmax)
