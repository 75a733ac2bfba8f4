"""
Robot, controller and simulation parameters
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from linefollower.errors import ConfigurationError

MOTOR_MODELS = ("ideal", "lag")


def _filter_known(cls: type, data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in known}


@dataclass
class RobotParams:
    """Physical parameters of the differential-drive chassis"""

    wheelbase: float = 0.1  # m (distance between the two drive wheels)
    wheel_radius: float = 0.04  # m
    motor_model: str = "ideal"  # "ideal" (wheels track commands) or "lag"
    # Second-order motor response, only used by the "lag" model
    motor_natural_frequency: float = 20.0  # rad/s
    motor_damping_ratio: float = 0.71
    motor_gain: float = 1.0

    def __post_init__(self) -> None:
        """Validate derived parameters"""
        if self.wheelbase <= 0:
            raise ConfigurationError(f"wheelbase must be positive, got {self.wheelbase}")
        if self.wheel_radius <= 0:
            raise ConfigurationError(f"wheel_radius must be positive, got {self.wheel_radius}")
        if self.motor_model not in MOTOR_MODELS:
            raise ConfigurationError(
                f"unknown motor_model {self.motor_model!r}, expected one of {MOTOR_MODELS}"
            )
        if self.motor_natural_frequency <= 0 or self.motor_damping_ratio < 0:
            raise ConfigurationError("motor response must have positive frequency and non-negative damping")

    @property
    def motor_coefficients(self) -> tuple:
        """Coefficients (c0, c1, c2) of the wheel response c0*v'' + c1*v' + c2*v = u"""
        w0 = self.motor_natural_frequency
        return 1.0 / (w0 * w0), 2.0 * self.motor_damping_ratio / w0, 1.0 / self.motor_gain

    def wheel_rate(self, surface_speed: float) -> float:
        """Wheel angular speed (rad/s) for a wheel surface speed (m/s)"""
        return surface_speed / self.wheel_radius

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RobotParams":
        return cls(**_filter_known(cls, data))


@dataclass(frozen=True)
class ControllerParams:
    """PID gains and cruising speed for one run

    Supplied by the caller (a default or an optimizer candidate) and never
    mutated by the simulation.
    """

    kp: float = 10.0
    ki: float = 0.0
    kd: float = 0.0
    base_speed: float = 0.5  # m/s

    def as_tuple(self) -> tuple:
        return (self.kp, self.ki, self.kd, self.base_speed)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControllerParams":
        return cls(**{key: float(value) for key, value in _filter_known(cls, data).items()})


@dataclass
class SimulationConfig:
    """Timing, budget and termination settings of a simulation run"""

    dt_sim: float = 0.001  # s (dynamics integration step)
    dt_ctrl: float = 0.01  # s (controller sample period)
    max_ticks: int = 120_000  # tick budget (120 s at the default dt_sim)
    derailment_offset: float = 0.1  # m (robot centre to track centreline)
    laps: int = 1
    stop_on_lap: bool = True
    integral_limit: Optional[float] = None  # None leaves the integral unbounded
    max_wheel_speed: Optional[float] = None  # None leaves wheel commands unclamped

    def __post_init__(self) -> None:
        """Validate timing and budgets"""
        if self.dt_sim <= 0:
            raise ConfigurationError(f"dt_sim must be positive, got {self.dt_sim}")
        if self.dt_ctrl <= 0:
            raise ConfigurationError(f"dt_ctrl must be positive, got {self.dt_ctrl}")
        # Relative tolerance so that dt_ctrl == dt_sim survives float noise
        if self.dt_ctrl < self.dt_sim * (1.0 - 1e-9):
            raise ConfigurationError(
                f"dt_ctrl ({self.dt_ctrl}) must not be shorter than dt_sim ({self.dt_sim})"
            )
        if self.max_ticks <= 0:
            raise ConfigurationError(f"max_ticks must be positive, got {self.max_ticks}")
        if self.derailment_offset <= 0:
            raise ConfigurationError("derailment_offset must be positive")
        if self.laps <= 0:
            raise ConfigurationError(f"laps must be positive, got {self.laps}")
        if self.integral_limit is not None and self.integral_limit <= 0:
            raise ConfigurationError("integral_limit must be positive when set")
        if self.max_wheel_speed is not None and self.max_wheel_speed <= 0:
            raise ConfigurationError("max_wheel_speed must be positive when set")

    @property
    def duration(self) -> float:
        """Longest simulated time allowed by the tick budget (s)"""
        return self.max_ticks * self.dt_sim

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        return cls(**_filter_known(cls, data))
