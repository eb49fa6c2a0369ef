"""Tremblay-Dube dynamic electrochemical voltage model."""

from __future__ import annotations

import logging
import math

from battery_voltage.core import solver
from battery_voltage.core.solver import SolverSettings
from battery_voltage.core.voltage_model import (
    TOLERANCE,
    DynamicParameters,
    VoltageMode,
    VoltageModel,
    VoltageParameters,
)
from battery_voltage.utils.validators import (
    ConfigurationError,
    raise_on_failure,
    validate_dynamic_parameters,
)

logger = logging.getLogger(__name__)


class VoltageDynamic(VoltageModel):
    """
    Generic battery model after Tremblay & Dessaint (2009).

    Per-cell terminal voltage:

        V = E0 - K * Qmod / (Qmod - it) + A * exp(-B0 * it) - R * I

    where it is the charge removed from the cell and Qmod is the capacity at
    which the model would reach the cutoff voltage. Charges and currents are
    converted to a per-string basis since cells in series share the current.
    """

    def __init__(self, params: VoltageParameters, solver_settings: SolverSettings | None = None):
        self._A = 0.0
        self._B0 = 0.0
        self._K = 0.0
        self._E0 = 0.0
        super().__init__(params, solver_settings)

    @classmethod
    def from_values(
        cls,
        cells_in_series: int,
        strings_in_parallel: int,
        voltage: float,
        Vfull: float,
        Vexp: float,
        Vnom: float,
        Qfull: float,
        Qexp: float,
        Qnom: float,
        Vcut: float,
        C_rate: float,
        resistance: float,
        dt_hour: float,
    ) -> VoltageDynamic:
        """Build a dynamic model from raw construction arguments (per-cell values)."""
        params = VoltageParameters(
            voltage_choice=VoltageMode.MODEL,
            cells_in_series=cells_in_series,
            strings_in_parallel=strings_in_parallel,
            nominal_voltage=voltage,
            resistance=resistance,
            timestep_hours=dt_hour,
            dynamic=DynamicParameters(
                Vfull=Vfull,
                Vexp=Vexp,
                Vnom=Vnom,
                Vcut=Vcut,
                Qfull=Qfull,
                Qexp=Qexp,
                Qnom=Qnom,
                C_rate=C_rate,
            ),
        )
        return cls(params)

    def initialize(self) -> None:
        super().initialize()
        raise_on_failure(validate_dynamic_parameters(self.params.dynamic), "voltage_dynamic_t")
        # assume fully charged, not the nominal value
        self.state.cell_voltage = self.params.dynamic.Vfull
        self.state.full_capacity_modifier = self.params.dynamic.Qfull
        self.parameter_compute()

    def parameter_compute(self) -> None:
        """
        Derive the model constants from three points on the discharge curve.

        A  = Vfull - Vexp                   exponential zone amplitude (V)
        B0 = 3 / Qexp                       exponential zone time constant (1/Ah)
        K  = (Vfull - Vnom + A(e^(-B0 Qnom) - 1)) (Qfull - Qnom) / Qnom
        E0 = Vfull + K - A                  constant voltage (V)

        Vfull is taken as the rested fully charged voltage, so the model
        returns exactly Vfull at full charge and zero current.
        """
        d = self.params.dynamic
        self._A = d.Vfull - d.Vexp
        self._B0 = 3.0 / d.Qexp
        self._K = ((d.Vfull - d.Vnom + self._A * (math.exp(-self._B0 * d.Qnom) - 1)) * (d.Qfull - d.Qnom)) / d.Qnom
        self._E0 = d.Vfull + self._K - self._A

        if self._A < 0 or self._B0 < 0 or self._K < 0 or self._E0 < 0:
            raise ConfigurationError(
                "Error during calculation of battery voltage model parameters: negative value(s) found.\n"
                f"A: {self._A:f}, B: {self._B0:f}, K: {self._K:f}, E0: {self._E0:f}"
            )
        logger.debug("Dynamic model constants A=%g B0=%g K=%g E0=%g", self._A, self._B0, self._K, self._E0)

    @property
    def constants(self) -> dict[str, float]:
        """Derived model constants."""
        return {"A": self._A, "B0": self._B0, "K": self._K, "E0": self._E0}

    def calculate_qfull_mod(self, qmax: float) -> float:
        """
        Capacity at which the cell would reach Vcut when discharged at C_rate.

        Args:
            qmax: Per-string capacity (Ah)
        """
        d = self.params.dynamic
        if d.Vcut == 0 or self._K == 0:
            return qmax
        c = (-d.Vcut + self._E0 - self.params.resistance * qmax * d.C_rate + self._A * math.exp(-self._B0 * qmax)) / self._K
        if c == 1:
            return qmax
        return qmax + qmax / (c - 1)

    def _open_circuit(self, it: float, q_mod: float) -> float:
        if it >= q_mod:
            # past the cutoff capacity
            return 0.0
        return self._E0 - self._K * (q_mod / (q_mod - it)) + self._A * math.exp(-self._B0 * it)

    def voltage_model_tremblay_hybrid(self, q_cell: float, current: float, q0_cell: float) -> float:
        """
        Per-cell voltage.

        Args:
            q_cell: Per-string capacity (Ah)
            current: Per-string current (A)
            q0_cell: Per-string charge (Ah)
        """
        q_mod = self.calculate_qfull_mod(q_cell)
        it = q_cell - q0_cell
        return self._open_circuit(it, q_mod) - self.params.resistance * current

    def set_initial_soc(self, soc: float) -> None:
        q_full = self.params.dynamic.Qfull * self.params.strings_in_parallel
        self.update_voltage(soc * 0.01 * q_full, q_full, 0.0, 25.0, self.params.timestep_hours)

    def calculate_voltage_for_current(
        self, current: float, q: float, qmax: float, temperature: float = 25.0
    ) -> float:
        n = self.params.strings_in_parallel
        v = self.voltage_model_tremblay_hybrid(qmax / n, current / n, q / n)
        return self.params.cells_in_series * max(v, 0.0)

    def update_voltage(
        self, q: float, qmax: float, current: float, temperature: float = 25.0, dt: float | None = None
    ) -> None:
        n = self.params.strings_in_parallel
        qmax /= n
        q /= n
        current /= n
        self.state.cell_voltage = max(self.voltage_model_tremblay_hybrid(qmax, current, q), 0.0)
        self.state.full_capacity_modifier = self.calculate_qfull_mod(qmax)

    def calculate_max_charge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        p = self.params
        q /= p.strings_in_parallel
        qmax /= p.strings_in_parallel
        current = (q - qmax) / p.timestep_hours
        power = current * self.voltage_model_tremblay_hybrid(qmax, current, qmax)
        return (
            power * p.strings_in_parallel * p.cells_in_series,
            current * p.strings_in_parallel,
        )

    def calculate_max_discharge_w(
        self, q: float, qmax: float, temperature: float = 25.0
    ) -> tuple[float, float]:
        """
        Scan discharge currents in steps of q/10 until the cell would drop
        below Vcut or run out of charge within the timestep.
        """
        p = self.params
        q /= p.strings_in_parallel
        qmax /= p.strings_in_parallel
        v_cut = p.dynamic.Vcut
        dt = p.timestep_hours

        incr = q / 10.0
        current = incr
        vol = v_cut
        max_p = 0.0
        max_i = 0.0
        while incr > 0 and current * dt < q - TOLERANCE and vol >= v_cut:
            vol = self.voltage_model_tremblay_hybrid(qmax, current, q - current * dt)
            power = current * vol
            if power > max_p and vol >= v_cut:
                max_p = power
                max_i = current
            current += incr

        return (
            max_p * p.strings_in_parallel * p.cells_in_series,
            max_i * p.strings_in_parallel,
        )

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
        target = abs(power) / (p.cells_in_series * n)
        q_string = q / n
        q_max_string = qmax / n
        q_mod = self.calculate_qfull_mod(q_max_string)

        if power > 0:
            direction = 1.0

            def residual(x):
                i = x[0]
                it = q_max_string - (q_string - i * dt)
                return [i * (self._open_circuit(it, q_mod) - p.resistance * i) - target]

        else:
            direction = -1.0

            def residual(x):
                i = x[0]
                it = q_max_string - (q_string + i * dt)
                return [i * (self._open_circuit(it, q_mod) + p.resistance * i) - target]

        voltage = self.state.cell_voltage if self.state.cell_voltage != 0 else p.dynamic.Vnom
        result = solver.solve(residual, target / voltage, self.solver_settings)
        current = result.value
        if not math.isfinite(current) or current < 0:
            current = 0.0
        return current * n * direction
