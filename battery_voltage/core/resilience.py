"""Outage survival bookkeeping over independent voltage model clones."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from tqdm import tqdm

from battery_voltage.core.voltage_model import VoltageModel
from battery_voltage.utils.validators import ConnectionMismatchError

logger = logging.getLogger(__name__)

UNMET_TOLERANCE = 0.001  # kW
HOURS_PER_YEAR = 8760


class Connection(str, Enum):
    """Where the battery ties into the system."""

    AC = "ac"  # Behind its own inverter, on the AC bus
    DC = "dc"  # On the PV array's DC bus, sharing the PV inverter


@dataclass
class StepResult:
    """Power flows for one outage step (kW)."""

    pv_to_load: float = 0.0
    battery_to_load: float = 0.0
    pv_to_battery: float = 0.0
    unmet_load: float = 0.0


class OutageBattery:
    """
    One battery serving a critical load from the start of a hypothetical outage.

    Holds its own voltage model and charge so that many outage starts can be
    advanced independently.
    """

    def __init__(
        self,
        voltage_model: VoltageModel,
        q: float,
        qmax: float,
        connection: Connection = Connection.AC,
        min_outage_soc: float = 0.0,
        temperature: float = 25.0,
        inverter_efficiency: float = 0.96,
        inverter_max_kw: Optional[float] = None,
        start_index: int = 0,
    ):
        """
        Initialize the outage battery.

        Args:
            voltage_model: Stack voltage model, owned by this battery
            q: Present stack charge (Ah)
            qmax: Stack capacity (Ah)
            connection: AC or DC connection
            min_outage_soc: Lowest SOC (%) the battery may reach during an outage
            temperature: Cell temperature (°C)
            inverter_efficiency: DC to AC conversion efficiency (0-1]
            inverter_max_kw: AC capacity of the shared inverter for DC connection
            start_index: Timestep index at which the outage begins
        """
        self.voltage_model = voltage_model
        self.q = q
        self.qmax = qmax
        self.connection = Connection(connection)
        self.min_outage_soc = min_outage_soc
        self.temperature = temperature
        self.inverter_efficiency = inverter_efficiency
        self.inverter_max_kw = inverter_max_kw
        self.start_outage_index = start_index
        self.current_outage_index = start_index
        self.met_loads_kw = 0.0

    def clone(self, start_index: int) -> OutageBattery:
        """Independent copy beginning an outage at start_index."""
        other = copy.copy(self)
        other.voltage_model = self.voltage_model.clone()
        other.start_outage_index = start_index
        other.current_outage_index = start_index
        other.met_loads_kw = 0.0
        return other

    @property
    def soc(self) -> float:
        """State of charge (%)."""
        return 100.0 * self.q / self.qmax

    @property
    def dt_hour(self) -> float:
        return self.voltage_model.params.timestep_hours

    def _discharge(self, power_kw: float) -> float:
        """Discharge toward power_kw of stack DC power, returning the power delivered."""
        model = self.voltage_model
        q_min = self.min_outage_soc * 0.01 * self.qmax
        current = model.calculate_current_for_target_w(power_kw * 1000.0, self.q, self.qmax, self.temperature)
        current = min(max(current, 0.0), max(self.q - q_min, 0.0) / self.dt_hour)
        voltage = model.calculate_voltage_for_current(current, self.q, self.qmax, self.temperature)
        delivered = min(power_kw, current * voltage / 1000.0)

        self.q -= current * self.dt_hour
        model.update_voltage(self.q, self.qmax, current, self.temperature, self.dt_hour)
        return delivered

    def _charge(self, power_kw: float) -> float:
        """Charge with up to power_kw of stack DC power, returning the power absorbed."""
        model = self.voltage_model
        current = model.calculate_current_for_target_w(-power_kw * 1000.0, self.q, self.qmax, self.temperature)
        current = max(min(current, 0.0), (self.q - self.qmax) / self.dt_hour)
        voltage = model.calculate_voltage_for_current(current, self.q, self.qmax, self.temperature)
        absorbed = min(power_kw, -current * voltage / 1000.0)

        self.q -= current * self.dt_hour
        model.update_voltage(self.q, self.qmax, current, self.temperature, self.dt_hour)
        return absorbed

    def _rest(self) -> None:
        self.voltage_model.update_voltage(self.q, self.qmax, 0.0, self.temperature, self.dt_hour)

    def _finish_step(self, crit_load_kw: float, result: StepResult) -> bool:
        met = result.pv_to_load + result.battery_to_load
        result.unmet_load = max(crit_load_kw - met, 0.0)
        self.met_loads_kw += met
        survived = result.unmet_load < UNMET_TOLERANCE
        if survived:
            self.current_outage_index += 1
        return survived

    def run_outage_step_ac(self, crit_load_kw: float, pv_kw: float) -> bool:
        """
        Serve one step of critical load for an AC-connected battery.

        PV serves the load first, the battery covers the remainder, and any
        PV surplus charges the battery.

        Args:
            crit_load_kw: Critical AC load (kW)
            pv_kw: PV AC output (kW), negative values are inverter draw

        Returns:
            True if the load was fully met
        """
        if self.connection != Connection.AC:
            raise ConnectionMismatchError("run_outage_step_ac called for a battery with DC connection.")
        pv_kw = max(pv_kw, 0.0)
        result = StepResult(pv_to_load=min(pv_kw, crit_load_kw))
        remaining = crit_load_kw - result.pv_to_load
        surplus = pv_kw - result.pv_to_load

        if remaining > 0:
            dc_needed = remaining / self.inverter_efficiency
            result.battery_to_load = self._discharge(dc_needed) * self.inverter_efficiency
        elif surplus > 0:
            result.pv_to_battery = self._charge(surplus * self.inverter_efficiency)
        else:
            self._rest()
        return self._finish_step(crit_load_kw, result)

    def run_outage_step_dc(self, crit_load_kw: float, pv_kwdc: float) -> bool:
        """
        Serve one step of critical load for a DC-connected battery.

        PV and battery share one inverter whose AC output is capped at
        inverter_max_kw.

        Args:
            crit_load_kw: Critical AC load (kW)
            pv_kwdc: PV DC output (kW)

        Returns:
            True if the load was fully met
        """
        if self.connection != Connection.DC:
            raise ConnectionMismatchError("run_outage_step_dc called for a battery with AC connection.")
        eff = self.inverter_efficiency
        ac_limit = crit_load_kw if self.inverter_max_kw is None else min(crit_load_kw, self.inverter_max_kw)

        pv_kwdc = max(pv_kwdc, 0.0)
        result = StepResult(pv_to_load=min(pv_kwdc * eff, ac_limit))
        remaining = ac_limit - result.pv_to_load
        surplus_dc = pv_kwdc - result.pv_to_load / eff

        if remaining > 0:
            result.battery_to_load = self._discharge(remaining / eff) * eff
        elif surplus_dc > 0:
            result.pv_to_battery = self._charge(surplus_dc)
        else:
            self._rest()
        return self._finish_step(crit_load_kw, result)

    def get_indices_survived(self) -> int:
        return self.current_outage_index - self.start_outage_index

    def get_met_loads(self) -> float:
        return self.met_loads_kw


class ResilienceRunner:
    """
    Track how long a battery would survive an outage starting at every timestep.

    One OutageBattery clone is added per outage start; each call to
    run_surviving_batteries advances all of them one step and retires those
    that failed to meet the load.
    """

    def __init__(self, steps_per_hour: int = 1, n_years: int = 1, inverter_max_kw: Optional[float] = None):
        """
        Initialize the runner.

        Args:
            steps_per_hour: Simulation steps per hour
            n_years: Years in the analysis period
            inverter_max_kw: AC capacity of inverters serving DC-connected batteries
        """
        self.steps_per_hour = steps_per_hour
        self.n_years = n_years
        self.inverter_max_kw = inverter_max_kw
        self.step_per_year = steps_per_hour * HOURS_PER_YEAR
        steps_lifetime = self.step_per_year * n_years

        self.indices_survived = np.zeros(steps_lifetime, dtype=int)
        self.total_load_met = np.zeros(steps_lifetime)
        self.battery_per_outage_start: dict[int, OutageBattery] = {}
        self.outage_durations: list[float] = []
        self.probs_of_surviving: list[float] = []
        self.logs: list[str] = []

    def _log(self, message: str) -> None:
        self.logs.append(message)
        logger.warning(message)

    def add_battery_at_outage_timestep(self, battery: OutageBattery, index: int) -> None:
        """Start a new outage hypothesis at index from a copy of battery."""
        if not 0 <= index < len(self.indices_survived):
            raise ValueError(
                f"Outage start index {index} outside the analysis period of {len(self.indices_survived)} steps."
            )
        if index in self.battery_per_outage_start:
            self._log(f"Replacing battery which already existed at index {index}.")
        self.battery_per_outage_start[index] = battery.clone(index)

    def get_n_surviving_batteries(self) -> int:
        return len(self.battery_per_outage_start)

    def run_surviving_batteries(self, crit_load_kw: float, pv_kw: float, pv_kwdc: float = 0.0) -> None:
        """
        Advance every surviving battery by one step.

        Args:
            crit_load_kw: Critical load (kW AC)
            pv_kw: PV AC output (kW) for AC-connected batteries
            pv_kwdc: PV DC output (kW) for DC-connected batteries
        """
        if self.inverter_max_kw is not None and self.inverter_max_kw < crit_load_kw:
            if any(b.connection == Connection.DC for b in self.battery_per_outage_start.values()):
                message = (
                    "For DC-connected battery, maximum inverter AC Power less than max load "
                    "will lead to dropped load."
                )
                if message not in self.logs:
                    self._log(message)

        depleted = []
        for start_index, battery in self.battery_per_outage_start.items():
            if battery.connection == Connection.DC:
                survived = battery.run_outage_step_dc(crit_load_kw, pv_kwdc)
            else:
                survived = battery.run_outage_step_ac(crit_load_kw, pv_kw)
            if not survived:
                depleted.append(start_index)

        for start_index in depleted:
            battery = self.battery_per_outage_start.pop(start_index)
            self.indices_survived[start_index] = battery.get_indices_survived()
            self.total_load_met[start_index] = battery.get_met_loads()

    def run_surviving_batteries_by_looping(
        self,
        crit_loads_kw: Sequence[float],
        pv_kw: Sequence[float],
        pv_kwdc: Optional[Sequence[float]] = None,
        show_progress: bool = False,
    ) -> None:
        """
        Step all batteries until none survive or the analysis period ends.

        Args:
            crit_loads_kw: Single-year critical load (kW), repeated every year
            pv_kw: Lifetime PV AC output (kW)
            pv_kwdc: Lifetime PV DC output (kW) for DC-connected batteries
            show_progress: Show a progress bar
        """
        nrec = self.step_per_year
        steps_lifetime = len(self.indices_survived)

        pbar = tqdm(total=steps_lifetime, desc="Outage steps", disable=not show_progress)
        i = 0
        while self.get_n_surviving_batteries() > 0 and i < steps_lifetime:
            dc = pv_kwdc[i] if pv_kwdc is not None else 0.0
            self.run_surviving_batteries(crit_loads_kw[i % nrec], pv_kw[i], dc)
            i += 1
            pbar.update(1)
        pbar.close()

        if not self.battery_per_outage_start:
            return

        total_load = float(np.sum(crit_loads_kw[:nrec])) * self.n_years
        for start_index in self.battery_per_outage_start:
            self.indices_survived[start_index] = steps_lifetime
            self.total_load_met[start_index] = total_load
        self.battery_per_outage_start.clear()

    def compute_metrics(self) -> float:
        """
        Tabulate outage durations and their probabilities.

        Returns:
            Average hours survived across all outage starts
        """
        steps_total = float(len(self.indices_survived))
        durations, counts = np.unique(self.indices_survived, return_counts=True)
        self.outage_durations = [float(d) / self.steps_per_hour for d in durations]
        self.probs_of_surviving = [float(c) / steps_total for c in counts]
        return float(np.mean(self.indices_survived)) / self.steps_per_hour

    def get_hours_survived(self) -> list[float]:
        return [float(i) / self.steps_per_hour for i in self.indices_survived]

    def get_avg_crit_load_kwh(self) -> float:
        return float(np.sum(self.total_load_met)) / (len(self.total_load_met) * self.steps_per_hour)

    def get_outage_duration_hrs(self) -> list[float]:
        return list(self.outage_durations)

    def get_probs_of_surviving(self) -> list[float]:
        return list(self.probs_of_surviving)

    def get_cdf_of_surviving(self) -> list[float]:
        return np.cumsum(self.probs_of_surviving).tolist()

    def get_survival_function(self) -> list[float]:
        survival = (1.0 - np.cumsum(self.probs_of_surviving)).tolist()
        if survival and survival[-1] < 1e-7:
            survival[-1] = 0.0
        return survival

    def to_dataframe(self) -> pd.DataFrame:
        """Outage duration distribution as a DataFrame."""
        return pd.DataFrame(
            {
                "outage_duration_hrs": self.get_outage_duration_hrs(),
                "probability": self.get_probs_of_surviving(),
                "cdf": self.get_cdf_of_surviving(),
                "survival_function": self.get_survival_function(),
            }
        )
