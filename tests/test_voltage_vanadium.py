"""Tests for the vanadium redox flow voltage model."""

import math

import numpy as np
import pytest

from battery_voltage.core.voltage_vanadium import RCF, VoltageVanadiumRedox, clamp_soc

T_K = 298.15


def make_redox(series=1, strings=1, dt=1.0):
    return VoltageVanadiumRedox.from_values(series, strings, 1.41, 0.001, dt)


def brute_force_max_power(model, q, qmax, dt, points=20001):
    """Maximum single-cell discharge power over a dense current grid."""
    currents = np.linspace(0.0, (q - 0.001) / dt, points)
    return max(i * model.voltage_model(q - i * dt, qmax, i, T_K) for i in currents)


class TestVoltageVanadiumRedox:
    """Test suite for VoltageVanadiumRedox."""

    @pytest.fixture
    def cell(self):
        """Single-cell redox model."""
        return make_redox()

    def test_rcf_constant(self):
        """Test the physical constant."""
        assert RCF == pytest.approx(8.314 * 1.38 / (26.801 * 3600))

    def test_half_charge_is_nominal(self, cell):
        """Test the Nernst term vanishes at 50% SOC."""
        cell.update_voltage(50.0, 100.0, 0.0, 25.0)
        assert cell.cell_voltage == pytest.approx(1.41)

    def test_set_initial_soc(self, cell):
        """Test seeding from SOC percentage."""
        cell.set_initial_soc(50)
        assert cell.cell_voltage == pytest.approx(1.41)

        cell.set_initial_soc(90)
        expected = 1.41 + RCF * T_K * math.log(0.9**2 / 0.1**2)
        assert cell.cell_voltage == pytest.approx(expected)

    @pytest.mark.parametrize("q0", [0.0, 1e-9, 100.0, 120.0, -5.0])
    def test_extreme_soc_is_finite(self, cell, q0):
        """Test SOC clamping keeps the voltage finite."""
        v = cell.voltage_model(q0, 100.0, 0.0, T_K)
        assert math.isfinite(v)

    def test_clamped_values(self, cell):
        """Test the clamped end points."""
        low = cell.voltage_model(0.0, 100.0, 0.0, T_K)
        high = cell.voltage_model(100.0, 100.0, 0.0, T_K)

        assert low == pytest.approx(1.41 + RCF * T_K * math.log(1e-3**2 / (1 - 1e-3) ** 2))
        assert high == pytest.approx(1.41 + RCF * T_K * math.log(0.999**2 / 0.001**2))
        assert clamp_soc(0.0) == 1e-3
        assert clamp_soc(1.0) == pytest.approx(0.999)

    def test_voltage_rises_with_soc(self, cell):
        """Test monotonic open-circuit voltage."""
        voltages = [cell.voltage_model(q, 100.0, 0.0, T_K) for q in range(5, 100, 5)]
        for i in range(1, len(voltages)):
            assert voltages[i] > voltages[i - 1]

    def test_resistive_term_uses_magnitude(self, cell):
        """Test charge and discharge currents raise the voltage equally."""
        rest = cell.voltage_model(50.0, 100.0, 0.0, T_K)
        discharge = cell.voltage_model(50.0, 100.0, 10.0, T_K)
        charge = cell.voltage_model(50.0, 100.0, -10.0, T_K)

        assert discharge == pytest.approx(charge)
        assert discharge == pytest.approx(rest + 0.01)

    def test_temperature_dependence(self, cell):
        """Test the Nernst term scales with absolute temperature."""
        cold = cell.calculate_voltage_for_current(0.0, 80.0, 100.0, temperature=0.0)
        hot = cell.calculate_voltage_for_current(0.0, 80.0, 100.0, temperature=50.0)
        assert hot > cold

    def test_stack_voltage(self):
        """Test series cells multiply the voltage."""
        stack = make_redox(series=10, strings=2)
        v = stack.calculate_voltage_for_current(0.0, 100.0, 200.0)
        assert v == pytest.approx(14.1)

    def test_max_charge(self, cell):
        """Test the charge limit fills the stack in one step."""
        power, current = cell.calculate_max_charge_w(50.0, 100.0)

        assert current == pytest.approx(-50.0)
        expected_v = cell.voltage_model(100.0, 100.0, -50.0, T_K)
        assert power == pytest.approx(-50.0 * expected_v)

    def test_max_discharge(self, cell):
        """Test the discharge limit lies inside the available charge."""
        power, current = cell.calculate_max_discharge_w(50.0, 100.0)

        assert power > 0
        assert 0 < current < 50.0
        # power near the optimum exceeds power at the half-way current
        half = 0.5 * current
        assert power >= half * cell.voltage_model(50.0 - half, 100.0, half, T_K)

    def test_max_discharge_empty(self, cell):
        """Test an empty stack cannot discharge."""
        assert cell.calculate_max_discharge_w(0.0, 100.0) == (0.0, 0.0)

    def test_current_for_discharge_power(self, cell):
        """Test the solved current delivers the target power."""
        current = cell.calculate_current_for_target_w(10.0, 50.0, 100.0)

        assert current > 0
        v = cell.voltage_model(50.0 - current, 100.0, current, T_K)
        assert current * v == pytest.approx(10.0, rel=1e-4)

    def test_current_for_charge_power(self, cell):
        """Test charging returns a negative current."""
        current = cell.calculate_current_for_target_w(-10.0, 50.0, 100.0)

        assert current < 0
        v = cell.voltage_model(50.0 - current, 100.0, current, T_K)
        assert current * v == pytest.approx(-10.0, rel=1e-4)

    def test_current_with_strings(self):
        """Test stack current scales with parallel strings."""
        single = make_redox()
        stack = make_redox(series=2, strings=3)

        i1 = single.calculate_current_for_target_w(10.0, 50.0, 100.0)
        i6 = stack.calculate_current_for_target_w(60.0, 150.0, 300.0)
        assert i6 == pytest.approx(3 * i1, rel=1e-4)

    def test_zero_power(self, cell):
        """Test zero power gives zero current."""
        assert cell.calculate_current_for_target_w(0.0, 50.0, 100.0) == 0.0


class TestVoltageVanadiumRedoxTimesteps:
    """Discharge limits and power inversion over sub-hourly timesteps."""

    @pytest.mark.parametrize("dt", [1.0, 0.5, 0.25, 1.0 / 12])
    @pytest.mark.parametrize("q", [100.0, 99.9, 99.5, 60.0, 5.0])
    def test_max_discharge_matches_dense_scan(self, dt, q):
        """Test the discharge limit is the true maximum of I * V(I)."""
        cell = make_redox(dt=dt)
        power, current = cell.calculate_max_discharge_w(q, 100.0)
        expected = brute_force_max_power(cell, q, 100.0, dt)

        assert power == pytest.approx(expected, rel=1e-3)
        assert 0 < current <= (q - 0.001) / dt
        assert power == pytest.approx(current * cell.voltage_model(q - current * dt, 100.0, current, T_K))

    def test_quarter_hour_full_stack(self):
        """Test a full stack at 15 minute steps reports hundreds of watts."""
        cell = make_redox(dt=0.25)
        power, current = cell.calculate_max_discharge_w(100.0, 100.0)

        assert power > 500.0
        assert current > 300.0

    @pytest.mark.parametrize("dt", [0.5, 0.25, 1.0 / 12])
    @pytest.mark.parametrize("q", [100.0, 99.9, 60.0])
    def test_current_for_target_below_limit(self, dt, q):
        """Test a target under the limit is delivered exactly, not clamped."""
        cell = make_redox(dt=dt)
        max_p, max_i = cell.calculate_max_discharge_w(q, 100.0)
        current = cell.calculate_current_for_target_w(100.0, q, 100.0)

        assert max_p > 100.0
        assert 0 < current < max_i
        v = cell.voltage_model(q - current * dt, 100.0, current, T_K)
        assert current * v == pytest.approx(100.0, rel=1e-4)

    def test_target_above_limit_clamped(self):
        cell = make_redox(dt=0.25)
        max_p, max_i = cell.calculate_max_discharge_w(100.0, 100.0)
        assert cell.calculate_current_for_target_w(2 * max_p, 100.0, 100.0) == pytest.approx(max_i)
