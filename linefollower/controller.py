"""
Discrete PID line-following controller
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from linefollower.errors import ConfigurationError
from linefollower.params import ControllerParams
from linefollower.state import WheelCommand

# Fraction of a sample period by which a deadline may be missed due to float noise
DEADLINE_SLACK = 1e-9


@dataclass(frozen=True)
class ControllerState:
    """Memory of the control law between samples"""

    integral: float = 0.0
    previous_error: float = 0.0
    samples: int = 0  # samples taken so far; the next deadline is samples * period


def weighted_centroid(readings: np.ndarray, weights: np.ndarray) -> Optional[float]:
    """Reading-weighted mean of ``weights``, or None when nothing is read"""
    total = float(np.sum(readings))
    if total <= 0.0:
        return None
    return float(np.dot(readings, weights)) / total


class PIDController:
    """PID law over the line-position error, sampled every ``sample_period``

    The error is the centroid of the sensor lateral positions weighted by
    their readings: positive when the line lies to the left of the robot.
    A positive turn command speeds up the right wheel and slows the left
    one, turning the robot left towards the line.
    """

    def __init__(
        self,
        params: ControllerParams,
        sample_period: float,
        weights: Sequence[float],
        integral_limit: Optional[float] = None,
        max_wheel_speed: Optional[float] = None,
    ) -> None:
        """
        Initialize controller

        Args:
            params: PID gains and base speed
            sample_period: Controller sample period dt_ctrl (s)
            weights: Lateral position of each sensor in the robot frame (m)
            integral_limit: Symmetric clamp of the integral term, None for unbounded
            max_wheel_speed: Symmetric clamp of each wheel command, None for unclamped

        Raises:
            ConfigurationError: If the period is not positive or there are no weights
        """
        if not sample_period > 0 or not math.isfinite(sample_period):
            raise ConfigurationError(f"sample_period must be positive, got {sample_period}")
        self.weights = np.asarray(weights, dtype=float)
        if self.weights.size == 0:
            raise ConfigurationError("controller needs at least one sensor weight")
        self.params = params
        self.sample_period = sample_period
        self.integral_limit = integral_limit
        self.max_wheel_speed = max_wheel_speed
        self.reset()

    def reset(self) -> None:
        """Clear the integral and error memory for a new run"""
        self._integral = 0.0
        self._previous_error = 0.0
        self._samples = 0
        self.last_turn = 0.0
        self.last_error = 0.0
        self.last_command = WheelCommand(self.params.base_speed, self.params.base_speed)

    @property
    def state(self) -> ControllerState:
        return ControllerState(self._integral, self._previous_error, self._samples)

    @property
    def next_deadline(self) -> float:
        return self._samples * self.sample_period

    def line_error(self, readings: np.ndarray) -> float:
        """
        Lateral line position seen by the sensors (m)

        Holds the previous error when no sensor sees the line.
        """
        error = weighted_centroid(np.asarray(readings, dtype=float), self.weights)
        return self._previous_error if error is None else error

    def compute(self, error: float) -> WheelCommand:
        """
        Run one sample of the control law

        Args:
            error: Line-position error (m)

        Returns:
            New wheel command
        """
        dt = self.sample_period
        self._integral += error * dt
        if self.integral_limit is not None:
            self._integral = max(-self.integral_limit, min(self.integral_limit, self._integral))
        derivative = (error - self._previous_error) / dt
        turn = self.params.kp * error + self.params.ki * self._integral + self.params.kd * derivative
        self._previous_error = error
        self.last_error = error
        self.last_turn = turn

        left = self.params.base_speed - turn
        right = self.params.base_speed + turn
        if self.max_wheel_speed is not None:
            limit = self.max_wheel_speed
            left = max(-limit, min(limit, left))
            right = max(-limit, min(limit, right))
        self.last_command = WheelCommand(left, right)
        return self.last_command

    def maybe_update(self, sim_time: float, readings: np.ndarray) -> Optional[WheelCommand]:
        """
        Sample the control law if ``sim_time`` has reached the next deadline

        Args:
            sim_time: Accumulated simulation time (s)
            readings: Current sensor readings

        Returns:
            New wheel command, or None to keep holding the last one
        """
        if sim_time < self.next_deadline - DEADLINE_SLACK * self.sample_period:
            return None
        command = self.compute(self.line_error(readings))
        # Next deadline is the first sample instant strictly after sim_time
        self._samples = int(math.floor(sim_time / self.sample_period + DEADLINE_SLACK)) + 1
        return command
