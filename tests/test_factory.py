"""Tests for voltage model construction."""

import pytest

from battery_voltage.core.factory import VoltageVariant, create_voltage_model
from battery_voltage.core.solver import SolverSettings
from battery_voltage.core.voltage_dynamic import VoltageDynamic
from battery_voltage.core.voltage_model import DynamicParameters, VoltageMode, VoltageParameters
from battery_voltage.core.voltage_table import VoltageTable
from battery_voltage.core.voltage_vanadium import VoltageVanadiumRedox
from battery_voltage.utils.validators import ConfigurationError


@pytest.fixture
def table_params():
    return VoltageParameters(
        voltage_choice=VoltageMode.TABLE,
        cells_in_series=10,
        nominal_voltage=3.6,
        voltage_table=[[0, 4.1], [100, 3.4]],
    )


@pytest.fixture
def dynamic_params():
    return VoltageParameters(
        voltage_choice=VoltageMode.MODEL,
        nominal_voltage=3.6,
        resistance=0.05,
        dynamic=DynamicParameters(
            Vfull=4.1, Vexp=4.05, Vnom=3.4, Vcut=2.75, Qfull=2.25, Qexp=0.2, Qnom=2.0, C_rate=0.2
        ),
    )


class TestCreateVoltageModel:
    """Test suite for create_voltage_model."""

    def test_table_inferred(self, table_params):
        model = create_voltage_model(table_params)
        assert isinstance(model, VoltageTable)

    def test_dynamic_inferred(self, dynamic_params):
        model = create_voltage_model(dynamic_params)
        assert isinstance(model, VoltageDynamic)
        assert model.cell_voltage == pytest.approx(4.1)

    def test_vanadium_explicit(self):
        params = VoltageParameters(voltage_choice=VoltageMode.MODEL, nominal_voltage=1.41, resistance=0.001)
        model = create_voltage_model(params, "vanadium_redox")
        assert isinstance(model, VoltageVanadiumRedox)

    def test_variant_enum(self, table_params):
        model = create_voltage_model(table_params, VoltageVariant.TABLE)
        assert isinstance(model, VoltageTable)

    def test_string_voltage_choice(self, table_params):
        """Test voltage_choice given as its string value."""
        table_params.voltage_choice = "table"
        assert isinstance(create_voltage_model(table_params), VoltageTable)

    def test_solver_settings_passed(self, dynamic_params):
        settings = SolverSettings(max_iterations=20)
        model = create_voltage_model(dynamic_params, solver_settings=settings)
        assert model.solver_settings.max_iterations == 20

    def test_unknown_variant(self, table_params):
        with pytest.raises(ValueError, match="Unknown voltage model"):
            create_voltage_model(table_params, "lead_acid")

    def test_mode_mismatch(self, table_params):
        with pytest.raises(ValueError, match="requires voltage_choice=model"):
            create_voltage_model(table_params, VoltageVariant.DYNAMIC)

    def test_invalid_parameters(self):
        """Test validation errors propagate from the model."""
        params = VoltageParameters(voltage_choice=VoltageMode.TABLE, voltage_table=[[0, 4.1]])
        with pytest.raises(ConfigurationError):
            create_voltage_model(params)

    def test_independent_models(self, table_params):
        """Test each call returns an independent model."""
        a = create_voltage_model(table_params)
        b = create_voltage_model(table_params)
        a.set_initial_soc(10)
        assert b.cell_voltage != a.cell_voltage
