"""Vanadium redox flow battery voltage model."""

from __future__ import annotations

import logging
import math

import numpy as np

from battery_voltage.core import solver
from battery_voltage.core.solver import SolverSettings
from battery_voltage.core.voltage_model import (
    KELVIN_OFFSET,
    TOLERANCE,
    VoltageMode,
    VoltageModel,
    VoltageParameters,
)

logger = logging.getLogger(__name__)

# Gas constant * empirical factor / (Faraday constant in Ah/mol * s/h)
RCF = 8.314 * 1.38 / (26.801 * 3600)
MIN_SOC = 1e-3
SCAN_POINTS = 200


def _xlogx(x: float) -> float:
    """x * ln(x), continued to 0 at x = 0."""
    return x * math.log(x) if x > 0 else 0.0


def clamp_soc(soc: float) -> float:
    """Keep SOC inside (0, 1) where the Nernst term is finite."""
    if soc > 1.0 - TOLERANCE:
        return 1.0 - TOLERANCE
    if soc < MIN_SOC:
        return MIN_SOC
    return soc


def nernst_term(soc: float) -> float:
    """ln(SOC^2 / (1 - SOC)^2) at a clamped SOC."""
    soc = clamp_soc(soc)
    return math.log(soc**2 / (1.0 - soc) ** 2)


class VoltageVanadiumRedox(VoltageModel):
    """
    Vanadium redox flow stack voltage.

    Per-cell voltage:

        V = Vnom + RCF * T * ln(SOC^2 / (1 - SOC)^2) + |I| * R

    The resistive term uses the current magnitude so that both terms move
    in the same direction for charge and discharge.
    """

    def __init__(self, params: VoltageParameters, solver_settings: SolverSettings | None = None):
        self._RCF = 0.0
        super().__init__(params, solver_settings)

    @classmethod
    def from_values(
        cls,
        cells_in_series: int,
        strings_in_parallel: int,
        voltage: float,
        resistance: float,
        dt_hour: float,
    ) -> VoltageVanadiumRedox:
        """Build a redox model from raw construction arguments."""
        params = VoltageParameters(
            voltage_choice=VoltageMode.MODEL,
            cells_in_series=cells_in_series,
            strings_in_parallel=strings_in_parallel,
            nominal_voltage=voltage,
            resistance=resistance,
            timestep_hours=dt_hour,
        )
        return cls(params)

    def initialize(self) -> None:
        super().initialize()
        self._RCF = RCF

    def voltage_model(self, q0: float, qmax: float, current: float, temperature_k: float) -> float:
        """
        Per-cell voltage.

        Args:
            q0: Per-string charge (Ah)
            qmax: Per-string capacity (Ah)
            current: Per-string current (A)
            temperature_k: Temperature (K)
        """
        return (
            self.params.nominal_voltage
            + self._RCF * temperature_k * nernst_term(q0 / qmax)
            + abs(current) * self.params.resistance
        )

    def set_initial_soc(self, soc: float) -> None:
        self.update_voltage(soc, 100.0, 0.0, 25.0, self.params.timestep_hours)

    def calculate_voltage_for_current(
        self, current: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        n = self.params.strings_in_parallel
        v = self.voltage_model(q / n, qmax / n, current / n, temperature + KELVIN_OFFSET)
        return v * self.params.cells_in_series

    def update_voltage(
        self, q: float, qmax: float, current: float, temperature: float = 25.0, dt: float | None = None
    ) -> None:
        n = self.params.strings_in_parallel
        self.state.cell_voltage = self.voltage_model(q / n, qmax / n, current / n, temperature + KELVIN_OFFSET)

    def calculate_max_charge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        p = self.params
        n = p.strings_in_parallel
        qmax /= n
        q /= n
        max_i = (q - qmax) / p.timestep_hours
        v = self.voltage_model(qmax, qmax, max_i, temperature + KELVIN_OFFSET)
        return v * max_i * n * p.cells_in_series, max_i * n

    def calculate_max_discharge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        """
        Largest I * V(I) for currents in [0, (q - tol)/dt].

        A coarse scan brackets the maximum, then Newton refines it on
        d(I * V(I))/dI = 0. With SOC(I) = (q - I*dt)/Q the derivative times
        SOC*(1-SOC) is

            SOC(1-SOC)(Vnom + 2*I*R) + 2*RCF*T*(SOC(1-SOC)ln(SOC/(1-SOC)) - I*dt/Q)

        which is finite on the closed interval SOC in [0, 1]. The refined
        current is kept only if it beats the best scanned point.
        """
        p = self.params
        n = p.strings_in_parallel
        dt = p.timestep_hours
        q_string = q / n
        q_max_string = qmax / n
        temperature_k = temperature + KELVIN_OFFSET
        rcf_t = self._RCF * temperature_k
        i_limit = (q_string - TOLERANCE) / dt
        if i_limit <= 0:
            return 0.0, 0.0

        def discharge_power(i: float) -> float:
            return i * self.voltage_model(q_string - i * dt, q_max_string, i, temperature_k)

        currents = np.linspace(0.0, i_limit, SCAN_POINTS + 1)
        powers = [discharge_power(i) for i in currents]
        k = int(np.argmax(powers))
        best_i, best_p = float(currents[k]), powers[k]
        lo = float(currents[max(k - 1, 0)])
        hi = float(currents[min(k + 1, SCAN_POINTS)])

        def residual(x):
            i = min(max(x[0], lo), hi)
            soc = min(max((q_string - i * dt) / q_max_string, 0.0), 1.0)
            spread = soc * (1.0 - soc)
            log_ratio = (1.0 - soc) * _xlogx(soc) - soc * _xlogx(1.0 - soc)
            return [
                spread * (p.nominal_voltage + 2.0 * i * p.resistance)
                + 2.0 * rcf_t * (log_ratio - i * dt / q_max_string)
            ]

        if hi > lo:
            result = solver.solve(residual, best_i, self.solver_settings)
            refined = result.value
            if math.isfinite(refined):
                refined = min(max(refined, lo), hi)
                refined_p = discharge_power(refined)
                if refined_p > best_p:
                    best_i, best_p = refined, refined_p

        if best_p <= 0:
            return 0.0, 0.0
        return best_p * n * p.cells_in_series, best_i * n

    def calculate_current_for_target_w(
        self, power: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        if power == 0:
            return 0.0

        if power > 0:
            max_p, max_current = self.calculate_max_discharge_w(q, qmax, temperature)
        else:
            max_p, max_current = self.calculate_max_charge_w(q, qmax, temperature)
        if abs(max_p) <= abs(power):
            return max_current

        p = self.params
        n = p.strings_in_parallel
        dt = p.timestep_hours
        target = power / (p.cells_in_series * n)
        q_string = q / n
        q_max_string = qmax / n
        temperature_k = temperature + KELVIN_OFFSET

        def residual(x):
            i = x[0]
            soc = (q_string - i * dt) / q_max_string
            v = p.nominal_voltage + self._RCF * temperature_k * nernst_term(soc) + abs(i) * p.resistance
            return [i * v - target]

        voltage = self.state.cell_voltage if self.state.cell_voltage != 0 else p.nominal_voltage
        result = solver.solve(residual, target / voltage, self.solver_settings)
        current = result.value
        if not math.isfinite(current):
            logger.debug("Redox power inversion diverged for %.3f W", power)
            return max_current
        return current * n
