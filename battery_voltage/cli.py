"""Command-line interface for battery voltage models."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
import numpy as np
import pandas as pd

from battery_voltage.chemistry import Chemistry
from battery_voltage.utils.config_loader import (
    VoltageConfigModel,
    build_voltage_model,
    load_config,
    stack_capacity,
)
from battery_voltage.utils.validators import ValidationError


def _build(config: Path | None, chemistry: str, model: str | None, series: int, strings: int, dt: float):
    """Create a voltage model and stack capacity from a config file or a preset."""
    try:
        if config:
            cfg = load_config(config)
        else:
            cfg = VoltageConfigModel(
                chemistry=chemistry,
                model=model,
                timestep_hours=dt,
                topology={"cells_in_series": series, "strings_in_parallel": strings},
            )
        voltage_model = build_voltage_model(cfg)
        qmax = stack_capacity(cfg)
    except (ValidationError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    return voltage_model, qmax


def model_options(func):
    """Options shared by every command that builds a model."""
    options = [
        click.option(
            "--config",
            "-c",
            type=click.Path(exists=True, path_type=Path),
            help="Path to YAML configuration file",
        ),
        click.option(
            "--chemistry",
            type=click.Choice(Chemistry.list_available(), case_sensitive=False),
            default="NMC811",
            help="Chemistry preset (ignored with --config)",
        ),
        click.option(
            "--model",
            type=click.Choice(["table", "dynamic", "vanadium_redox"]),
            default=None,
            help="Voltage model (preset default if omitted)",
        ),
        click.option("--series", type=int, default=1, help="Cells in series"),
        click.option("--strings", type=int, default=1, help="Strings in parallel"),
        click.option("--dt", type=float, default=1.0, help="Timestep in hours"),
        click.option("--soc", type=float, default=100.0, help="State of charge (%)"),
        click.option("--temperature", type=float, default=25.0, help="Cell temperature (°C)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version="1.0.0", prog_name="battery-voltage")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """
    Battery Voltage Models

    Evaluate stack voltage, power limits and current for a target power
    using table, dynamic (Tremblay) or vanadium redox models.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@model_options
@click.option("--current", type=float, default=0.0, help="Stack current (A), positive discharges")
def voltage(config, chemistry, model, series, strings, dt, soc, temperature, current):
    """
    Stack voltage at a state of charge and current.

    \b
    # NMC811 dynamic model, 14 cells in series at 50% SOC
    battery-voltage voltage --series 14 --soc 50
    """
    voltage_model, qmax = _build(config, chemistry, model, series, strings, dt)
    q = qmax * soc / 100.0
    v = voltage_model.calculate_voltage_for_current(current, q, qmax, temperature)
    click.echo(f"Model: {voltage_model!r}")
    click.echo(f"  Stack voltage: {v:.4f} V")
    click.echo(f"  Nominal voltage: {voltage_model.battery_voltage_nominal():.4f} V")


@main.command()
@model_options
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
def limits(config, chemistry, model, series, strings, dt, soc, temperature, as_json):
    """Maximum charge and discharge power over one timestep."""
    voltage_model, qmax = _build(config, chemistry, model, series, strings, dt)
    q = qmax * soc / 100.0
    charge_w, charge_a = voltage_model.calculate_max_charge_w(q, qmax, temperature)
    discharge_w, discharge_a = voltage_model.calculate_max_discharge_w(q, qmax, temperature)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "max_charge_w": charge_w,
                    "max_charge_a": charge_a,
                    "max_discharge_w": discharge_w,
                    "max_discharge_a": discharge_a,
                }
            )
        )
        return

    click.echo(f"Limits at {soc:.1f}% SOC:")
    click.echo(f"  Max charge:    {charge_w:12.3f} W  {charge_a:10.3f} A")
    click.echo(f"  Max discharge: {discharge_w:12.3f} W  {discharge_a:10.3f} A")


@main.command()
@model_options
@click.option("--power", type=float, required=True, help="Target stack power (W), negative charges")
def current(config, chemistry, model, series, strings, dt, soc, temperature, power):
    """Current that delivers a target power over one timestep."""
    voltage_model, qmax = _build(config, chemistry, model, series, strings, dt)
    voltage_model.set_initial_soc(soc)
    q = qmax * soc / 100.0
    i = voltage_model.calculate_current_for_target_w(power, q, qmax, temperature)
    click.echo(f"Current for {power:.3f} W at {soc:.1f}% SOC: {i:.4f} A")


@main.command()
@model_options
@click.option("--points", type=int, default=21, help="Number of SOC points")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Write CSV here")
def curve(config, chemistry, model, series, strings, dt, soc, temperature, points, output):
    """Stack voltage vs state of charge at rest."""
    voltage_model, qmax = _build(config, chemistry, model, series, strings, dt)

    rows = []
    for s in np.linspace(100.0, 0.0, points):
        voltage_model.update_voltage(qmax * s / 100.0, qmax, 0.0, temperature)
        rows.append({"soc": s, "cell_voltage": voltage_model.cell_voltage, "stack_voltage": voltage_model.battery_voltage()})
    df = pd.DataFrame(rows)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output, index=False)
        click.echo(f"Voltage curve written to: {output}")
    else:
        click.echo(df.to_string(index=False, float_format=lambda x: f"{x:.4f}"))


@main.command()
def list_chemistries():
    """List available chemistry presets."""
    click.echo("\nAvailable Chemistry Presets:")
    click.echo("-" * 40)

    for name in Chemistry.list_available():
        chem = Chemistry.from_name(name)
        click.echo(f"\n  {name}")
        click.echo(f"    {chem.description}")
        click.echo(f"    Nominal voltage: {chem.voltage_nominal} V")
        click.echo(f"    Models: {', '.join(chem.supported_models)} (default {chem.default_model})")


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default="./config/example_config.yaml",
    help="Output path for example config",
)
def init_config(output: Path):
    """Generate example configuration file."""
    example_config = """# Battery Voltage Model Configuration
# ===================================

battery:
  model: "dynamic"        # table, dynamic, or vanadium_redox
  nominal_voltage: 3.6    # V per cell
  resistance: 0.05        # Ohm per cell
  timestep_hours: 1.0

  topology:
    cells_in_series: 14
    strings_in_parallel: 2

  dynamic:
    Vfull: 4.1
    Vexp: 4.05
    Vnom: 3.6
    Vcut: 2.75
    Qfull: 2.25
    Qexp: 0.2
    Qnom: 1.8
    C_rate: 1.0

  # for the table model, rows of [depth of discharge %, voltage]
  # voltage_table:
  #   - [0, 4.1]
  #   - [100, 3.4]

solver:
  max_iterations: 100
  atol: 1.0e-6
  rtol: 1.0e-6
  damping: 0.7
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        f.write(example_config)

    click.echo(f"Example configuration written to: {output}")
    click.echo("\nEdit this file and run:")
    click.echo(f"  battery-voltage limits --config {output}")


if __name__ == "__main__":
    main()
