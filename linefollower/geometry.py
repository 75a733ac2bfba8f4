"""
Track segment geometry: straight lines and circular arcs

Segments are a closed set of variants, so they are plain frozen dataclasses
joined in the ``Segment`` union and every operation is a module-level
function that dispatches on the variant.
"""

import math
from dataclasses import dataclass, field
from typing import Union

from linefollower.errors import GeometryError
from linefollower.state import Point2D

TWO_PI = 2.0 * math.pi
MIN_LENGTH = 1e-9  # m


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


@dataclass(frozen=True)
class LineSegment:
    """Straight segment from ``start`` to ``end``"""

    start: Point2D
    end: Point2D
    kind: str = field(default="line", init=False)

    def __post_init__(self) -> None:
        if not _finite(self.start.x, self.start.y, self.end.x, self.end.y):
            raise GeometryError(f"line segment {self.start} -> {self.end} has non-finite coordinates")
        if self.start.distance_to(self.end) <= MIN_LENGTH:
            raise GeometryError(f"line segment {self.start} -> {self.end} has zero length")


@dataclass(frozen=True)
class ArcSegment:
    """Circular arc swept from ``start_angle`` to ``end_angle`` around ``center``

    The arc runs counterclockwise when end_angle > start_angle and clockwise
    otherwise. Angles are in radians and the sweep may not exceed a full turn.
    """

    center: Point2D
    radius: float
    start_angle: float
    end_angle: float
    kind: str = field(default="arc", init=False)

    def __post_init__(self) -> None:
        if not _finite(self.center.x, self.center.y, self.radius, self.start_angle, self.end_angle):
            raise GeometryError("arc segment has non-finite center, radius or angles")
        if not self.radius > MIN_LENGTH:
            raise GeometryError(f"arc radius must be positive, got {self.radius}")
        sweep = abs(self.end_angle - self.start_angle)
        if sweep * self.radius <= MIN_LENGTH:
            raise GeometryError("arc segment has zero sweep")
        if sweep > TWO_PI + 1e-12:
            raise GeometryError(f"arc sweep {sweep:.6f} rad exceeds a full turn")

    @property
    def counterclockwise(self) -> bool:
        return self.end_angle > self.start_angle

    @property
    def sweep(self) -> float:
        """Signed sweep angle (rad)"""
        return self.end_angle - self.start_angle

    def angle_at(self, t: float) -> float:
        return self.start_angle + t * self.sweep


Segment = Union[LineSegment, ArcSegment]


@dataclass(frozen=True)
class SegmentProjection:
    """Closest point of a segment to a query point"""

    point: Point2D
    tangent: Point2D  # unit vector in travel direction
    t: float  # segment parameter in [0, 1]
    distance: float  # Euclidean distance to the query
    offset: float  # signed lateral offset, positive left of the tangent


def segment_length(segment: Segment) -> float:
    """Arc length of a segment (m)"""
    if isinstance(segment, LineSegment):
        return segment.start.distance_to(segment.end)
    return segment.radius * abs(segment.sweep)


def segment_point(segment: Segment, t: float) -> Point2D:
    """Point at parameter ``t`` in [0, 1]"""
    if isinstance(segment, LineSegment):
        return segment.start + (segment.end - segment.start).scaled(t)
    return segment.center + Point2D.polar(segment.angle_at(t), segment.radius)


def segment_tangent(segment: Segment, t: float) -> Point2D:
    """Unit tangent in travel direction at parameter ``t``"""
    if isinstance(segment, LineSegment):
        d = segment.end - segment.start
        return d.scaled(1.0 / d.norm())
    angle = segment.angle_at(t)
    direction = 1.0 if segment.counterclockwise else -1.0
    return Point2D(-math.sin(angle) * direction, math.cos(angle) * direction)


def segment_curvature(segment: Segment) -> float:
    """Signed curvature (1/m), positive when turning left"""
    if isinstance(segment, LineSegment):
        return 0.0
    return (1.0 if segment.counterclockwise else -1.0) / segment.radius


def segment_start(segment: Segment) -> Point2D:
    return segment_point(segment, 0.0)


def segment_end(segment: Segment) -> Point2D:
    return segment_point(segment, 1.0)


def _project(segment: Segment, query: Point2D, t: float) -> SegmentProjection:
    point = segment_point(segment, t)
    tangent = segment_tangent(segment, t)
    distance = query.distance_to(point)
    side = tangent.cross(query - point)
    return SegmentProjection(point, tangent, t, distance, math.copysign(distance, side))


def nearest_on_segment(segment: Segment, query: Point2D) -> SegmentProjection:
    """
    Closed-form closest point of a segment to ``query``

    Lines clamp the projection parameter to [0, 1]. Arcs project the query
    angle onto the swept range and clamp to the nearer endpoint when the
    angle falls outside it.

    Args:
        segment: Line or arc segment
        query: World point

    Returns:
        Projection with closest point, tangent, parameter and signed offset
    """
    if isinstance(segment, LineSegment):
        d = segment.end - segment.start
        t = (query - segment.start).dot(d) / d.dot(d)
        return _project(segment, query, min(1.0, max(0.0, t)))

    v = query - segment.center
    angle = math.atan2(v.y, v.x)
    sweep = abs(segment.sweep)
    if segment.counterclockwise:
        travelled = (angle - segment.start_angle) % TWO_PI
    else:
        travelled = (segment.start_angle - angle) % TWO_PI
    if travelled <= sweep:
        return _project(segment, query, travelled / sweep)

    at_start = _project(segment, query, 0.0)
    at_end = _project(segment, query, 1.0)
    return at_start if at_start.distance <= at_end.distance else at_end


def segment_to_dict(segment: Segment) -> dict:
    if isinstance(segment, LineSegment):
        return {
            "kind": "line",
            "start": [segment.start.x, segment.start.y],
            "end": [segment.end.x, segment.end.y],
        }
    return {
        "kind": "arc",
        "center": [segment.center.x, segment.center.y],
        "radius": segment.radius,
        "start_angle": segment.start_angle,
        "end_angle": segment.end_angle,
    }


def segment_from_dict(data: dict) -> Segment:
    """
    Build a segment from its structured description

    Args:
        data: ``{"kind": "line", "start": [x, y], "end": [x, y]}`` or
            ``{"kind": "arc", "center": [x, y], "radius": r,
            "start_angle": a0, "end_angle": a1}``

    Returns:
        The segment variant
    """
    kind = data.get("kind")
    try:
        if kind == "line":
            return LineSegment(Point2D(*map(float, data["start"])), Point2D(*map(float, data["end"])))
        if kind == "arc":
            return ArcSegment(
                Point2D(*map(float, data["center"])),
                float(data["radius"]),
                float(data["start_angle"]),
                float(data["end_angle"]),
            )
    except GeometryError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise GeometryError(f"malformed {kind} segment description: {data!r}") from exc
    raise GeometryError(f"unknown segment kind {kind!r}")
