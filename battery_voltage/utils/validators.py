"""Validation utilities for voltage model configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from battery_voltage.core.voltage_model import DynamicParameters


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


class ConfigurationError(ValidationError):
    """Raised when a voltage model is initialized with unusable parameters."""

    pass


class ConnectionMismatchError(RuntimeError):
    """Raised when an AC-only or DC-only path is used on the wrong connection."""

    pass


@dataclass
class ValidationResult:
    """Result of a validation check."""

    passed: bool
    message: str
    details: dict | None = None


def validate_voltage_table(table: Sequence[Sequence[float]]) -> list[ValidationResult]:
    """
    Check the shape of a depth-of-discharge vs voltage table.

    Args:
        table: Rows of [DOD (%), voltage (V)]

    Returns:
        List of validation results
    """
    results = []
    if len(table) == 0:
        results.append(ValidationResult(passed=False, message="Empty voltage table."))
        return results

    if len(table) < 2 or any(len(row) != 2 for row in table):
        results.append(
            ValidationResult(
                passed=False,
                message="Battery voltage matrix must have 2 columns and at least 2 rows.",
                details={"rows": len(table)},
            )
        )
        return results

    values = np.asarray(table, dtype=float)
    if not np.all(np.isfinite(values)):
        results.append(ValidationResult(passed=False, message="Voltage table contains non-finite values."))
    else:
        results.append(ValidationResult(passed=True, message="Voltage table shape valid"))
    return results


def validate_dynamic_parameters(dynamic: DynamicParameters) -> list[ValidationResult]:
    """
    Check the voltage ordering and capacities of the electrochemical model inputs.

    Args:
        dynamic: Tremblay model inputs

    Returns:
        List of validation results
    """
    results = []
    if dynamic.Vfull <= dynamic.Vexp or dynamic.Vexp <= dynamic.Vnom or dynamic.Vnom <= dynamic.Vcut:
        results.append(
            ValidationResult(
                passed=False,
                message=(
                    "For the electrochemical battery voltage model, voltage inputs must meet "
                    "the requirement Vfull > Vexp > Vnom > Vcut."
                ),
                details={
                    "Vfull": dynamic.Vfull,
                    "Vexp": dynamic.Vexp,
                    "Vnom": dynamic.Vnom,
                    "Vcut": dynamic.Vcut,
                },
            )
        )
    if dynamic.Qfull <= 0 or dynamic.Qexp <= 0 or dynamic.Qnom <= 0:
        results.append(
            ValidationResult(
                passed=False,
                message=f"Capacities must be > 0 (Qfull={dynamic.Qfull}, Qexp={dynamic.Qexp}, Qnom={dynamic.Qnom})",
            )
        )
    if not results:
        results.append(ValidationResult(passed=True, message="Electrochemical model inputs valid"))
    return results


def raise_on_failure(results: list[ValidationResult], prefix: str) -> None:
    """Raise ConfigurationError with the first failed result's message."""
    for result in results:
        if not result.passed:
            raise ConfigurationError(f"{prefix} error: {result.message}")
