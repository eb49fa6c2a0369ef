"""Configuration loading and validation utilities."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

if TYPE_CHECKING:
    from battery_voltage.core.voltage_model import VoltageModel

VALID_MODELS = ["table", "dynamic", "vanadium_redox"]


class TopologyConfigModel(BaseModel):
    """Stack topology."""

    cells_in_series: int = Field(default=1, gt=0)
    strings_in_parallel: int = Field(default=1, gt=0)


class DynamicConfigModel(BaseModel):
    """Tremblay model inputs (per cell)."""

    Vfull: float = Field(gt=0)
    Vexp: float = Field(gt=0)
    Vnom: float = Field(gt=0)
    Vcut: float = Field(default=0.0, ge=0)
    Qfull: float = Field(gt=0)
    Qexp: float = Field(gt=0)
    Qnom: float = Field(gt=0)
    C_rate: float = Field(default=1.0, ge=0)


class SolverConfigModel(BaseModel):
    """Root finder controls."""

    max_iterations: int = Field(default=100, gt=0)
    atol: float = Field(default=1e-6, gt=0)
    rtol: float = Field(default=1e-6, gt=0)
    damping: float = Field(default=0.7, gt=0, le=1)


class VoltageConfigModel(BaseModel):
    """Complete voltage model configuration."""

    model: Optional[str] = None
    chemistry: Optional[str] = None

    nominal_voltage: Optional[float] = Field(default=None, gt=0)
    resistance: Optional[float] = Field(default=None, ge=0)
    timestep_hours: float = Field(default=1.0, gt=0)
    capacity: Optional[float] = Field(default=None, gt=0)  # Stack capacity (Ah)

    topology: TopologyConfigModel = Field(default_factory=TopologyConfigModel)
    voltage_table: Optional[list[list[float]]] = None
    dynamic: Optional[DynamicConfigModel] = None
    solver: SolverConfigModel = Field(default_factory=SolverConfigModel)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.lower() not in VALID_MODELS:
            raise ValueError(f"Invalid model '{v}'. Must be one of: {VALID_MODELS}")
        return v.lower()

    @model_validator(mode="after")
    def check_source(self) -> VoltageConfigModel:
        if self.chemistry is None:
            if self.model is None:
                raise ValueError("Either 'model' or 'chemistry' must be given")
            if self.nominal_voltage is None:
                raise ValueError("'nominal_voltage' is required without a chemistry preset")
            if self.model == "table" and not self.voltage_table:
                raise ValueError("'voltage_table' is required for the table model")
            if self.model == "dynamic" and self.dynamic is None:
                raise ValueError("'dynamic' parameters are required for the dynamic model")
        return self


def load_config(config_path: str | Path) -> VoltageConfigModel:
    """
    Load voltage model configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated configuration model

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    return VoltageConfigModel(**_map_yaml_to_model(raw_config))


def _map_yaml_to_model(raw: dict[str, Any]) -> dict[str, Any]:
    """Accept either a flat document or one nested under a 'battery' key."""
    if "battery" in raw:
        result = dict(raw["battery"])
        if "solver" in raw:
            result["solver"] = raw["solver"]
        return result
    return dict(raw)


def save_config(config: VoltageConfigModel, output_path: str | Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration model
        output_path: Path to save YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(exclude_none=True)

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)


def build_voltage_model(config: VoltageConfigModel) -> VoltageModel:
    """
    Create an initialized voltage model from a configuration.

    Preset values from `chemistry` are used where the configuration leaves a
    field unset.

    Args:
        config: Validated configuration

    Returns:
        Voltage model

    Raises:
        ConfigurationError: If the model rejects the parameters
    """
    from battery_voltage.chemistry import Chemistry
    from battery_voltage.core.factory import create_voltage_model
    from battery_voltage.core.solver import SolverSettings
    from battery_voltage.core.voltage_model import DynamicParameters, VoltageMode, VoltageParameters

    topology = config.topology
    if config.chemistry is not None:
        preset = Chemistry.from_name(config.chemistry)
        model = config.model or preset.default_model
        params = preset.to_voltage_parameters(
            model=model,
            cells_in_series=topology.cells_in_series,
            strings_in_parallel=topology.strings_in_parallel,
            timestep_hours=config.timestep_hours,
        )
    else:
        model = config.model
        params = VoltageParameters(
            voltage_choice=VoltageMode.TABLE if model == "table" else VoltageMode.MODEL,
            cells_in_series=topology.cells_in_series,
            strings_in_parallel=topology.strings_in_parallel,
            timestep_hours=config.timestep_hours,
        )

    if config.nominal_voltage is not None:
        params.nominal_voltage = config.nominal_voltage
    if config.resistance is not None:
        params.resistance = config.resistance
    if config.voltage_table is not None and model == "table":
        params.voltage_table = [list(row) for row in config.voltage_table]
    if config.dynamic is not None and model == "dynamic":
        params.dynamic = DynamicParameters(**config.dynamic.model_dump())

    settings = SolverSettings(**config.solver.model_dump())
    return create_voltage_model(params, variant=model, solver_settings=settings)


def stack_capacity(config: VoltageConfigModel) -> float:
    """
    Stack capacity (Ah) implied by a configuration.

    Uses `capacity` if set, otherwise the per-cell capacity of the dynamic
    inputs or chemistry preset times the number of strings.
    """
    if config.capacity is not None:
        return config.capacity
    strings = config.topology.strings_in_parallel
    if config.dynamic is not None:
        return config.dynamic.Qfull * strings
    if config.chemistry is not None:
        from battery_voltage.chemistry import Chemistry

        return Chemistry.from_name(config.chemistry).capacity * strings
    raise ValueError("Configuration does not define a capacity")
