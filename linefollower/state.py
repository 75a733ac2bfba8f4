"""
Simulation state representation
"""

import math
from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Point2D:
    """Planar coordinate in metres"""

    x: float
    y: float

    def __add__(self, other: "Point2D") -> "Point2D":
        return Point2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point2D") -> "Point2D":
        return Point2D(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> "Point2D":
        return Point2D(self.x * factor, self.y * factor)

    def dot(self, other: "Point2D") -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: "Point2D") -> float:
        """z component of self x other (positive when other is counterclockwise)"""
        return self.x * other.y - self.y * other.x

    def norm(self) -> float:
        return math.hypot(self.x, self.y)

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y])

    @staticmethod
    def polar(angle: float, radius: float = 1.0) -> "Point2D":
        return Point2D(radius * math.cos(angle), radius * math.sin(angle))


@dataclass(frozen=True)
class Pose:
    """Rigid-body placement of the robot"""

    x: float  # m
    y: float  # m
    heading: float  # rad, counterclockwise from +x

    @property
    def position(self) -> Point2D:
        return Point2D(self.x, self.y)

    def to_world(self, forward: float, left: float) -> Point2D:
        """
        Transform a point from the robot frame into world coordinates

        Args:
            forward: Coordinate along the heading (m)
            left: Coordinate to the left of the heading (m)

        Returns:
            World position of the point
        """
        c = math.cos(self.heading)
        s = math.sin(self.heading)
        return Point2D(self.x + c * forward - s * left, self.y + s * forward + c * left)


@dataclass(frozen=True)
class WheelCommand:
    """Wheel surface speed pair (m/s)"""

    left: float
    right: float

    @property
    def linear(self) -> float:
        return 0.5 * (self.left + self.right)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.left, self.right)


@dataclass(frozen=True)
class RobotState:
    """State vector integrated by the robot dynamics"""

    x: float  # m
    y: float  # m
    heading: float  # rad
    linear_velocity: float = 0.0  # m/s
    angular_velocity: float = 0.0  # rad/s
    # Wheel surface speeds and accelerations (only evolve independently under motor lag)
    left_speed: float = 0.0  # m/s
    right_speed: float = 0.0  # m/s
    left_accel: float = 0.0  # m/s²
    right_accel: float = 0.0  # m/s²

    SIZE = 9

    @property
    def pose(self) -> Pose:
        return Pose(self.x, self.y, self.heading)

    @property
    def position(self) -> Point2D:
        return Point2D(self.x, self.y)

    def with_pose(self, pose: Pose) -> "RobotState":
        return replace(self, x=pose.x, y=pose.y, heading=pose.heading)

    def to_array(self) -> np.ndarray:
        return np.array([
            self.x,
            self.y,
            self.heading,
            self.linear_velocity,
            self.angular_velocity,
            self.left_speed,
            self.right_speed,
            self.left_accel,
            self.right_accel,
        ])

    @classmethod
    def from_array(cls, values: np.ndarray) -> "RobotState":
        return cls(*(float(v) for v in values[: cls.SIZE]))

    @classmethod
    def at_rest(cls, pose: Pose) -> "RobotState":
        return cls(pose.x, pose.y, pose.heading)
