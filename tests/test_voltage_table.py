"""Tests for the table voltage model."""

import numpy as np
import pytest

from battery_voltage.chemistry import Chemistry
from battery_voltage.core.voltage_table import VoltageTable
from battery_voltage.utils.validators import ConfigurationError


def make_table(rows, nominal=3.8, series=1, strings=1, dt=1.0):
    return VoltageTable.from_values(series, strings, nominal, rows, 0.01, dt)


class TestVoltageTable:
    """Test suite for VoltageTable."""

    @pytest.fixture
    def linear_table(self):
        """Two-row table from 4.1 V to 3.4 V."""
        return make_table([[0, 4.1], [100, 3.4]])

    @pytest.fixture
    def nmc_table(self):
        """NMC811 preset discharge table."""
        params = Chemistry.from_name("NMC811").to_voltage_parameters(model="table")
        return VoltageTable(params)

    def test_linear_midpoint(self, linear_table):
        """Test interpolation at 50% DOD."""
        assert linear_table.calculate_voltage(50) == pytest.approx(3.75)

    def test_endpoints(self, linear_table):
        """Test the table end points."""
        assert linear_table.calculate_voltage(0) == pytest.approx(4.1)
        assert linear_table.calculate_voltage(100) == pytest.approx(3.4)

    def test_dod_clamped(self, linear_table):
        """Test DOD outside [0, 100] is clamped."""
        assert linear_table.calculate_voltage(-20) == pytest.approx(4.1)
        assert linear_table.calculate_voltage(150) == pytest.approx(3.4)

    def test_unsorted_rows(self):
        """Test rows are sorted by descending voltage."""
        model = make_table([[100, 3.4], [50, 3.9], [0, 4.1]])
        assert model.calculate_voltage(25) == pytest.approx(4.0)
        assert model.calculate_voltage(75) == pytest.approx(3.65)

    def test_monotonic(self, nmc_table):
        """Test voltage never increases with DOD."""
        voltages = [nmc_table.calculate_voltage(dod) for dod in np.linspace(0, 100, 201)]
        for i in range(1, len(voltages)):
            assert voltages[i] <= voltages[i - 1] + 1e-12, f"Voltage not monotonic at step {i}"

    def test_set_initial_soc(self, linear_table):
        """Test seeding the state from SOC."""
        linear_table.set_initial_soc(50)
        assert linear_table.cell_voltage == pytest.approx(3.75)

        linear_table.set_initial_soc(100)
        assert linear_table.cell_voltage == pytest.approx(4.1)

    def test_stack_voltage(self):
        """Test series cells multiply the cell voltage."""
        model = make_table([[0, 4.1], [100, 3.4]], series=10)
        model.set_initial_soc(50)

        assert model.battery_voltage() == pytest.approx(37.5)
        assert model.battery_voltage_nominal() == pytest.approx(38.0)

    def test_update_voltage(self, linear_table):
        """Test the per-step update uses q/qmax."""
        linear_table.update_voltage(50.0, 100.0, 0.0)
        assert linear_table.cell_voltage == pytest.approx(3.75)

    def test_voltage_for_current_is_pure(self, linear_table):
        """Test voltage for a current does not change state."""
        linear_table.set_initial_soc(100)
        v = linear_table.calculate_voltage_for_current(50.0, 100.0, 100.0)

        assert v == pytest.approx(3.75)
        assert linear_table.cell_voltage == pytest.approx(4.1)

    def test_max_charge(self, linear_table):
        """Test the charge limit fills the cell in one step at the full voltage."""
        power, current = linear_table.calculate_max_charge_w(50.0, 100.0)

        assert current == pytest.approx(-50.0)
        assert power == pytest.approx(-205.0)

    def test_max_discharge(self, linear_table):
        """Test the discharge limit from full charge."""
        power, current = linear_table.calculate_max_discharge_w(100.0, 100.0)

        assert current == pytest.approx(100.0)
        assert power == pytest.approx(340.0)

    def test_max_discharge_empty(self, linear_table):
        """Test an empty cell cannot discharge."""
        power, current = linear_table.calculate_max_discharge_w(0.0, 100.0)

        assert power == 0.0
        assert current == 0.0

    def test_round_trip_max_discharge(self, nmc_table):
        """Test the max discharge power maps back to its current."""
        power, current = nmc_table.calculate_max_discharge_w(2.0, 3.0)
        assert nmc_table.calculate_current_for_target_w(power, 2.0, 3.0) == pytest.approx(current)

    def test_current_for_discharge_power(self, linear_table):
        """Test the solved current delivers the target power."""
        current = linear_table.calculate_current_for_target_w(100.0, 100.0, 100.0)

        assert current == pytest.approx(25.50, abs=0.01)
        v = linear_table.calculate_voltage_for_current(current, 100.0, 100.0)
        assert v * current == pytest.approx(100.0, rel=1e-6)

    def test_current_for_charge_power(self, linear_table):
        """Test charging returns a negative current delivering the target."""
        current = linear_table.calculate_current_for_target_w(-100.0, 50.0, 100.0)

        assert current < 0
        v = linear_table.calculate_voltage_for_current(current, 50.0, 100.0)
        assert v * current == pytest.approx(-100.0, rel=1e-6)

    def test_current_clamped_to_max(self, linear_table):
        """Test requests above the limit return the limiting current."""
        assert linear_table.calculate_current_for_target_w(1e6, 100.0, 100.0) == pytest.approx(100.0)
        assert linear_table.calculate_current_for_target_w(-1e6, 50.0, 100.0) == pytest.approx(-50.0)

    def test_zero_power(self, linear_table):
        """Test zero power gives zero current."""
        assert linear_table.calculate_current_for_target_w(0.0, 50.0, 100.0) == 0.0

    def test_series_strings_power(self):
        """Test stack power scales with series cells."""
        single = make_table([[0, 4.1], [100, 3.4]])
        stack = make_table([[0, 4.1], [100, 3.4]], series=10)

        p1, i1 = single.calculate_max_discharge_w(100.0, 100.0)
        p10, i10 = stack.calculate_max_discharge_w(100.0, 100.0)
        assert p10 == pytest.approx(10 * p1)
        assert i10 == pytest.approx(i1)

    def test_clone_is_independent(self, linear_table):
        """Test clones own their state and parameters."""
        clone = linear_table.clone()
        clone.set_initial_soc(0)
        clone.params.voltage_table.append([50, 3.0])

        assert linear_table.cell_voltage != clone.cell_voltage
        assert len(linear_table.params.voltage_table) == 2


class TestVoltageTableValidation:
    """Configuration errors raised at initialization."""

    def test_empty_table(self):
        with pytest.raises(ConfigurationError, match="Empty voltage table"):
            make_table([])

    def test_single_row(self):
        with pytest.raises(ConfigurationError, match="at least 2 rows"):
            make_table([[0, 4.1]])

    def test_wrong_column_count(self):
        with pytest.raises(ConfigurationError, match="2 columns"):
            make_table([[0, 4.1, 1.0], [100, 3.4, 1.0]])

    def test_identical_voltages(self):
        with pytest.raises(ConfigurationError, match="identical voltages"):
            make_table([[0, 4.1], [50, 4.1], [100, 3.4]])

    def test_no_voltage_below_nominal(self):
        with pytest.raises(ConfigurationError, match="less than the nominal"):
            make_table([[0, 4.1], [100, 3.4]], nominal=3.0)

    def test_no_voltage_above_nominal(self):
        with pytest.raises(ConfigurationError, match="greater than nominal"):
            make_table([[0, 4.1], [100, 3.4]], nominal=4.5)

    def test_bad_topology(self):
        with pytest.raises(ConfigurationError):
            make_table([[0, 4.1], [100, 3.4]], series=0)

    def test_bad_timestep(self):
        with pytest.raises(ConfigurationError):
            make_table([[0, 4.1], [100, 3.4]], dt=0.0)
