"""Damped Newton-Raphson root finder with finite-difference Jacobian."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
TOLERANCE = 1e-6
DAMPING = 0.7

ResidualFunction = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class SolverSettings:
    """Iteration budget and convergence controls for the root finder."""

    max_iterations: int = MAX_ITERATIONS
    atol: float = TOLERANCE
    rtol: float = TOLERANCE
    damping: float = DAMPING


@dataclass
class SolverResult:
    """Outcome of a root-finding run."""

    x: np.ndarray
    residual: np.ndarray
    converged: bool
    iterations: int

    @property
    def value(self) -> float:
        """First component of the solution, for scalar problems."""
        return float(self.x[0])


def _jacobian(func: ResidualFunction, x: np.ndarray, f0: np.ndarray) -> np.ndarray:
    """Forward-difference estimate of df/dx."""
    n = x.size
    jac = np.empty((f0.size, n))
    for j in range(n):
        step = 1e-8 * max(abs(x[j]), 1.0)
        x_step = x.copy()
        x_step[j] += step
        jac[:, j] = (np.atleast_1d(func(x_step)) - f0) / step
    return jac


def newton(
    func: ResidualFunction,
    x0: float | Sequence[float] | np.ndarray,
    max_iterations: int = MAX_ITERATIONS,
    atol: float = TOLERANCE,
    rtol: float = TOLERANCE,
    damping: float = DAMPING,
) -> SolverResult:
    """
    Solve func(x) = 0 with a damped Newton-Raphson iteration.

    Each update is x_{k+1} = x_k - damping * J^-1 f(x_k). Iteration stops when
    the residual norm drops below atol, or when the step is smaller than
    atol + rtol * |x|. If the budget runs out (or the Jacobian is singular),
    the last iterate is returned with converged=False; callers treat it as a
    best-effort answer.

    Args:
        func: Residual function mapping an array x to an array of residuals
        x0: Initial guess (scalar or vector)
        max_iterations: Maximum number of Newton steps
        atol: Absolute tolerance on residual and step size
        rtol: Relative tolerance on step size
        damping: Fraction of the full Newton step applied each iteration

    Returns:
        SolverResult with the final iterate and convergence flag
    """
    x = np.atleast_1d(np.asarray(x0, dtype=float)).copy()
    f = np.atleast_1d(np.asarray(func(x), dtype=float))
    converged = bool(np.max(np.abs(f)) < atol)
    iterations = 0

    while not converged and iterations < max_iterations:
        iterations += 1
        jac = _jacobian(func, x, f)
        try:
            delta = np.linalg.solve(jac, f)
        except np.linalg.LinAlgError:
            logger.debug("Singular Jacobian at x=%s after %d iterations", x, iterations)
            break
        if not np.all(np.isfinite(delta)):
            logger.debug("Non-finite Newton step at x=%s", x)
            break

        x = x - damping * delta
        f = np.atleast_1d(np.asarray(func(x), dtype=float))

        small_step = np.all(np.abs(damping * delta) <= atol + rtol * np.abs(x))
        converged = bool(np.max(np.abs(f)) < atol) or bool(small_step)

    if not converged:
        logger.debug("Newton solver did not converge in %d iterations; residual=%s", iterations, f)

    return SolverResult(x=x, residual=f, converged=converged, iterations=iterations)


def solve(func: ResidualFunction, x0: float, settings: SolverSettings | None = None) -> SolverResult:
    """Run newton() with the given settings (module defaults if None)."""
    s = settings or SolverSettings()
    return newton(
        func,
        x0,
        max_iterations=s.max_iterations,
        atol=s.atol,
        rtol=s.rtol,
        damping=s.damping,
    )
