"""
Closed track built from line and arc segments
"""

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from linefollower.errors import GeometryError
from linefollower.geometry import (
    ArcSegment,
    LineSegment,
    Segment,
    nearest_on_segment,
    segment_curvature,
    segment_end,
    segment_from_dict,
    segment_length,
    segment_point,
    segment_start,
    segment_tangent,
    segment_to_dict,
)
from linefollower.state import Point2D, Pose

logger = logging.getLogger(__name__)

PointLike = Union[Point2D, Tuple[float, float], Sequence[float]]

# Distances closer than this are treated as equal so joints resolve to the earlier segment
TIE_TOLERANCE = 1e-12


@dataclass(frozen=True)
class TrackProjection:
    """Result of a nearest-point query against the whole track"""

    point: Point2D
    tangent: Point2D
    offset: float  # signed lateral offset, positive left of the tangent
    distance: float
    segment_index: int
    t: float  # parameter on the segment
    station: float  # arc length from the track start (m)

    @property
    def heading(self) -> float:
        return math.atan2(self.tangent.y, self.tangent.x)


def _as_point(point: PointLike) -> Point2D:
    if isinstance(point, Point2D):
        return point
    x, y = point
    return Point2D(float(x), float(y))


class Track:
    """Immutable closed loop of segments

    Consecutive segments must chain end to start, and the last segment must
    end where the first one starts, within ``tolerance``.
    """

    def __init__(self, segments: Iterable[Segment], tolerance: float = 1e-6) -> None:
        """
        Initialize and validate a track

        Args:
            segments: Segments in travel order
            tolerance: Maximum gap allowed at each joint (m)

        Raises:
            GeometryError: If there are no segments or the loop does not close
        """
        self._segments: Tuple[Segment, ...] = tuple(segments)
        self._tolerance = tolerance
        if not self._segments:
            raise GeometryError("a track needs at least one segment")
        for i, segment in enumerate(self._segments):
            if not isinstance(segment, (LineSegment, ArcSegment)):
                raise GeometryError(f"segment {i} is not a line or arc: {segment!r}")

        n = len(self._segments)
        for i in range(n):
            end = segment_end(self._segments[i])
            start = segment_start(self._segments[(i + 1) % n])
            gap = end.distance_to(start)
            if not gap <= tolerance:
                if i == n - 1:
                    raise GeometryError(
                        f"track does not close: last segment ends {gap:.3g} m from the start"
                    )
                raise GeometryError(
                    f"segments {i} and {i + 1} do not chain: gap of {gap:.3g} m"
                )

        self._lengths: Tuple[float, ...] = tuple(segment_length(s) for s in self._segments)
        starts: List[float] = []
        total = 0.0
        for length in self._lengths:
            starts.append(total)
            total += length
        self._starts: Tuple[float, ...] = tuple(starts)
        self._length = total
        logger.debug("Built track with %d segments, length %.3f m", n, total)

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._segments

    @property
    def length(self) -> float:
        """Total loop length (m)"""
        return self._length

    @property
    def tolerance(self) -> float:
        return self._tolerance

    def __len__(self) -> int:
        return len(self._segments)

    def __repr__(self) -> str:
        return f"Track({len(self._segments)} segments, length={self._length:.3f})"

    def _locate(self, station: float) -> Tuple[int, float]:
        s = station % self._length
        i = max(0, bisect_right(self._starts, s) - 1)
        return i, min(1.0, (s - self._starts[i]) / self._lengths[i])

    def point_at(self, station: float) -> Point2D:
        """Point after travelling ``station`` metres from the start (wraps around)"""
        i, t = self._locate(station)
        return segment_point(self._segments[i], t)

    def tangent_at(self, station: float) -> Point2D:
        i, t = self._locate(station)
        return segment_tangent(self._segments[i], t)

    def normal_at(self, station: float) -> Point2D:
        """Unit normal pointing left of the travel direction"""
        tangent = self.tangent_at(station)
        return Point2D(-tangent.y, tangent.x)

    def curvature_at(self, station: float) -> float:
        i, _ = self._locate(station)
        return segment_curvature(self._segments[i])

    def start_pose(self) -> Pose:
        """Pose centred on the first point, heading along the first tangent"""
        p = segment_start(self._segments[0])
        tangent = segment_tangent(self._segments[0], 0.0)
        return Pose(p.x, p.y, math.atan2(tangent.y, tangent.x))

    def sample_points(self, n: int = 500) -> np.ndarray:
        """
        Evenly spaced points along the loop

        Args:
            n: Number of intervals

        Returns:
            Array of shape (n + 1, 2); the last row repeats the first
        """
        stations = np.linspace(0.0, self._length, n + 1)
        points = [self.point_at(s) for s in stations[:-1]]
        points.append(segment_start(self._segments[0]))
        return np.array([[p.x, p.y] for p in points])

    def nearest(self, point: PointLike) -> TrackProjection:
        """
        Closest point on the track to ``point``

        Every segment is projected in closed form and the global minimum
        distance wins. Ties go to the segment met first in travel order.

        Args:
            point: Query point

        Returns:
            Projection with closest point, tangent and signed lateral offset
            (positive when the query lies left of the tangent)
        """
        query = _as_point(point)
        best = None
        best_index = 0
        for i, segment in enumerate(self._segments):
            projection = nearest_on_segment(segment, query)
            if best is None or projection.distance < best.distance - TIE_TOLERANCE:
                best = projection
                best_index = i
        return TrackProjection(
            point=best.point,
            tangent=best.tangent,
            offset=best.offset,
            distance=best.distance,
            segment_index=best_index,
            t=best.t,
            station=self._starts[best_index] + best.t * self._lengths[best_index],
        )

    def to_description(self) -> List[dict]:
        return [segment_to_dict(s) for s in self._segments]

    @classmethod
    def from_description(cls, description: Iterable[dict], tolerance: float = 1e-6) -> "Track":
        """
        Build a track from a list of segment descriptions

        Args:
            description: Segment dicts as produced by ``to_description``
            tolerance: Joint tolerance (m)

        Returns:
            Validated track
        """
        return cls([segment_from_dict(d) for d in description], tolerance=tolerance)

    @classmethod
    def circle(cls, radius: float, center: PointLike = (0.0, 0.0)) -> "Track":
        """Counterclockwise circle starting at its lowest point, heading +x"""
        c = _as_point(center)
        return cls([ArcSegment(c, radius, -math.pi / 2, 3 * math.pi / 2)])


def predefined_track() -> Track:
    """Reference loop of straights, a square corner and arcs (about 50 m)"""
    half_pi = math.pi / 2
    return Track([
        LineSegment(Point2D(0.0, -4.0), Point2D(8.0, -4.0)),
        LineSegment(Point2D(8.0, -4.0), Point2D(8.0, -9.0)),
        ArcSegment(Point2D(7.0, -9.0), 1.0, 0.0, -half_pi),
        LineSegment(Point2D(7.0, -10.0), Point2D(3.0, -10.0)),
        ArcSegment(Point2D(3.0, -11.0), 1.0, half_pi, 3 * half_pi),
        LineSegment(Point2D(3.0, -12.0), Point2D(8.0, -12.0)),
        ArcSegment(Point2D(8.0, -10.0), 2.0, -half_pi, 0.0),
        LineSegment(Point2D(10.0, -10.0), Point2D(10.0, -2.0)),
        ArcSegment(Point2D(8.0, -2.0), 2.0, 0.0, half_pi),
        LineSegment(Point2D(8.0, 0.0), Point2D(0.0, 0.0)),
        ArcSegment(Point2D(0.0, -2.0), 2.0, half_pi, 3 * half_pi),
    ])


def rounded_rectangle_track(
    width: float, height: float, corner_radius: float, origin: PointLike = (0.0, 0.0)
) -> Track:
    """
    Counterclockwise stadium-like loop with smooth corners

    Args:
        width: Outer width (m)
        height: Outer height (m)
        corner_radius: Radius of the four quarter-circle corners (m)
        origin: Lower-left corner of the bounding box

    Returns:
        Track starting at the middle of the bottom straight, heading +x
    """
    if 2 * corner_radius > min(width, height):
        raise GeometryError("corner radius too large for the rectangle")
    ox, oy = _as_point(origin).x, _as_point(origin).y
    r = corner_radius
    half_pi = math.pi / 2
    x0, x1 = ox + r, ox + width - r
    y0, y1 = oy + r, oy + height - r
    mid = ox + width / 2
    segments: List[Segment] = [
        ArcSegment(Point2D(x1, y0), r, -half_pi, 0.0),
        ArcSegment(Point2D(x1, y1), r, 0.0, half_pi),
        ArcSegment(Point2D(x0, y1), r, half_pi, math.pi),
        ArcSegment(Point2D(x0, y0), r, math.pi, 3 * half_pi),
    ]
    straights: List[Segment] = []
    if x1 > x0:
        straights = [
            LineSegment(Point2D(mid, oy), Point2D(x1, oy)),
            LineSegment(Point2D(x1, oy + height), Point2D(x0, oy + height)),
        ]
    right = LineSegment(Point2D(ox + width, y0), Point2D(ox + width, y1)) if y1 > y0 else None
    left = LineSegment(Point2D(ox, y1), Point2D(ox, y0)) if y1 > y0 else None
    loop: List[Segment] = []
    if straights:
        loop.append(straights[0])
    loop.append(segments[0])
    if right is not None:
        loop.append(right)
    loop.append(segments[1])
    if straights:
        loop.append(straights[1])
    loop.append(segments[2])
    if left is not None:
        loop.append(left)
    loop.append(segments[3])
    if straights:
        loop.append(LineSegment(Point2D(x0, oy), Point2D(mid, oy)))
    return Track(loop)
