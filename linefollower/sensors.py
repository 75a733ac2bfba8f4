"""
Line sensor array mounted on the robot chassis
"""

from typing import Sequence, Tuple

import numpy as np

from linefollower.errors import ConfigurationError
from linefollower.state import Pose
from linefollower.track import Track

RESPONSES = ("linear", "binary")


class SensorArray:
    """Fixed set of reflectance sensors in the robot frame

    Each sensor sits at (forward, left) relative to the robot centre. A
    reading is 1.0 when the sensor is centred over the line and falls to 0.0
    once the line is ``footprint_radius`` away ("linear"), or is simply 1.0 /
    0.0 inside / outside the footprint ("binary").
    """

    def __init__(
        self,
        offsets: Sequence[Tuple[float, float]],
        footprint_radius: float = 0.015,
        response: str = "linear",
    ) -> None:
        """
        Initialize sensor array

        Args:
            offsets: (forward, left) position of each sensor (m)
            footprint_radius: Distance at which a sensor stops seeing the line (m)
            response: "linear" or "binary"

        Raises:
            ConfigurationError: On an empty array, bad footprint or response
        """
        self.offsets = np.asarray(offsets, dtype=float).reshape(-1, 2)
        if len(self.offsets) == 0:
            raise ConfigurationError("sensor array needs at least one sensor")
        if footprint_radius <= 0:
            raise ConfigurationError(f"footprint_radius must be positive, got {footprint_radius}")
        if response not in RESPONSES:
            raise ConfigurationError(f"unknown sensor response {response!r}, expected one of {RESPONSES}")
        self.offsets.setflags(write=False)
        self.footprint_radius = footprint_radius
        self.response = response

    @classmethod
    def linear(
        cls,
        count: int = 7,
        spacing: float = 0.01,
        forward_offset: float = 0.06,
        footprint_radius: float = 0.015,
        response: str = "linear",
    ) -> "SensorArray":
        """
        Evenly spaced bar of sensors perpendicular to the heading

        Args:
            count: Number of sensors
            spacing: Lateral distance between neighbouring sensors (m)
            forward_offset: Distance of the bar ahead of the robot centre (m)
            footprint_radius: See ``SensorArray``
            response: See ``SensorArray``

        Returns:
            Sensor array ordered from the rightmost to the leftmost sensor
        """
        if count <= 0:
            raise ConfigurationError(f"sensor count must be positive, got {count}")
        lateral = (np.arange(count) - (count - 1) / 2.0) * spacing
        offsets = [(forward_offset, y) for y in lateral]
        return cls(offsets, footprint_radius=footprint_radius, response=response)

    @property
    def count(self) -> int:
        return len(self.offsets)

    @property
    def lateral_positions(self) -> np.ndarray:
        """Left coordinate of each sensor in the robot frame (m)"""
        return self.offsets[:, 1].copy()

    def world_positions(self, pose: Pose) -> np.ndarray:
        """
        Sensor positions in world coordinates

        Args:
            pose: Robot pose

        Returns:
            Array of shape (count, 2)
        """
        c, s = np.cos(pose.heading), np.sin(pose.heading)
        rotation = np.array([[c, -s], [s, c]])
        return self.offsets @ rotation.T + np.array([pose.x, pose.y])

    def line_offsets(self, pose: Pose, track: Track) -> np.ndarray:
        """Signed lateral offset of each sensor from the track centreline (m)"""
        return np.array([track.nearest(p).offset for p in self.world_positions(pose)])

    def response_to(self, offsets: np.ndarray) -> np.ndarray:
        """Convert lateral offsets into readings in [0, 1]"""
        distance = np.abs(offsets)
        if self.response == "binary":
            return (distance <= self.footprint_radius).astype(float)
        return np.clip(1.0 - distance / self.footprint_radius, 0.0, 1.0)

    def read(self, pose: Pose, track: Track) -> np.ndarray:
        """
        Read every sensor at ``pose``

        Args:
            pose: Robot pose
            track: Track to sense

        Returns:
            Readings in [0, 1], one per sensor, in array order
        """
        return self.response_to(self.line_offsets(pose, track))
