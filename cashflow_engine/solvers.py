"""
One-dimensional root finders.

`Solver1D.solve(objective, accuracy, guess, step)` first expands a bracket
around `guess`, then hands it to the concrete method. Every objective
evaluation counts against `max_evaluations`; running out raises
ConvergenceError.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Protocol

from scipy.optimize import brentq

from .config import DEFAULT_MAX_ITERATIONS
from .errors import ConvergenceError

logger = logging.getLogger(__name__)

GROWTH_FACTOR = 1.6


class Objective(Protocol):
    def value(self, x: float) -> float:
        ...


class DifferentiableObjective(Objective, Protocol):
    def derivative(self, x: float) -> float:
        ...


class Solver1D:
    def __init__(
        self,
        max_evaluations: int = DEFAULT_MAX_ITERATIONS,
        lower_bound: Optional[float] = None,
        upper_bound: Optional[float] = None,
    ):
        self.max_evaluations = int(max_evaluations)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.evaluations = 0

    def set_max_evaluations(self, n: int) -> None:
        self.max_evaluations = int(n)

    def _enforce_bounds(self, x: float) -> float:
        if self.lower_bound is not None and x < self.lower_bound:
            return self.lower_bound
        if self.upper_bound is not None and x > self.upper_bound:
            return self.upper_bound
        return x

    def solve(self, objective: Objective, accuracy: float, guess: float, step: float) -> float:
        accuracy = max(accuracy, sys.float_info.epsilon)
        self.evaluations = 0

        root = guess
        fx_max = objective.value(root)
        self.evaluations += 1
        if fx_max == 0.0:
            return root

        if fx_max > 0.0:
            x_min = self._enforce_bounds(root - step)
            fx_min = objective.value(x_min)
            x_max = root
        else:
            x_min = root
            fx_min = fx_max
            x_max = self._enforce_bounds(root + step)
            fx_max = objective.value(x_max)
        self.evaluations += 1

        while self.evaluations <= self.max_evaluations:
            if fx_min * fx_max <= 0.0:
                if fx_min == 0.0:
                    return x_min
                if fx_max == 0.0:
                    return x_max
                if root >= x_max or root <= x_min:
                    root = 0.5 * (x_max + x_min)
                logger.debug(
                    "%s bracketed root in [%.10g, %.10g] after %d evaluations",
                    type(self).__name__, x_min, x_max, self.evaluations,
                )
                return self._solve_bracketed(objective, accuracy, root, x_min, fx_min, x_max, fx_max)

            if abs(fx_min) < abs(fx_max):
                x_min = self._enforce_bounds(x_min + GROWTH_FACTOR * (x_min - x_max))
                fx_min = objective.value(x_min)
            else:
                x_max = self._enforce_bounds(x_max + GROWTH_FACTOR * (x_max - x_min))
                fx_max = objective.value(x_max)
            self.evaluations += 1

        raise ConvergenceError(
            f"unable to bracket root in {self.max_evaluations} function evaluations "
            f"(last bracket: f[{x_min:.6g},{x_max:.6g}] -> [{fx_min:.6g},{fx_max:.6g}])"
        )

    def _solve_bracketed(self, objective, accuracy, root, x_min, fx_min, x_max, fx_max) -> float:
        raise NotImplementedError


class Brent(Solver1D):
    """Derivative-free bracketed solve, delegated to scipy's brentq."""

    def _solve_bracketed(self, objective, accuracy, root, x_min, fx_min, x_max, fx_max) -> float:
        remaining = self.max_evaluations - self.evaluations
        if remaining <= 0:
            raise ConvergenceError(f"maximum number of function evaluations ({self.max_evaluations}) exceeded")

        x, result = brentq(
            objective.value,
            x_min,
            x_max,
            xtol=accuracy,
            maxiter=remaining,
            full_output=True,
            disp=False,
        )
        self.evaluations += result.function_calls
        if not result.converged:
            raise ConvergenceError(
                f"maximum number of function evaluations ({self.max_evaluations}) exceeded: {result.flag}"
            )

        logger.debug("Brent converged to %.12g in %d evaluations", x, self.evaluations)
        return float(x)


class NewtonSafe(Solver1D):
    """
    Newton-Raphson kept inside the bracket: a step that would leave it, or
    that does not shrink fast enough, is replaced by bisection.
    """

    def _solve_bracketed(self, objective, accuracy, root, x_min, fx_min, x_max, fx_max) -> float:
        # orient so that f(xl) < 0
        if fx_min < 0.0:
            xl, xh = x_min, x_max
        else:
            xh, xl = x_min, x_max

        dx_old = x_max - x_min
        dx = dx_old

        froot = objective.value(root)
        dfroot = objective.derivative(root)
        self.evaluations += 1

        while self.evaluations <= self.max_evaluations:
            if froot == 0.0:
                logger.debug("NewtonSafe hit exact root %.12g in %d evaluations", root, self.evaluations)
                return root

            out_of_range = ((root - xh) * dfroot - froot) * ((root - xl) * dfroot - froot) > 0.0
            too_slow = abs(2.0 * froot) > abs(dx_old * dfroot)
            if out_of_range or too_slow:
                dx_old = dx
                dx = 0.5 * (xh - xl)
                root = xl + dx
            else:
                dx_old = dx
                dx = froot / dfroot
                root -= dx

            if abs(dx) < accuracy:
                logger.debug("NewtonSafe converged to %.12g in %d evaluations", root, self.evaluations)
                return root

            froot = objective.value(root)
            dfroot = objective.derivative(root)
            self.evaluations += 1

            if froot < 0.0:
                xl = root
            else:
                xh = root

        raise ConvergenceError(f"maximum number of function evaluations ({self.max_evaluations}) exceeded")
