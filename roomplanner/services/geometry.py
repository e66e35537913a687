"""
Geometry primitives for room planning.

Rooms are described in room-local meters on the floor plane. Plan points are
(x, z) pairs; 3D points use y as the up axis and keep y = 0 on the floor.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Sequence, Union
import math


class PlanPoint(NamedTuple):
    """Floor polygon vertex (x, z) in meters."""
    x: float
    z: float


@dataclass(frozen=True)
class Point3D:
    """3D point or vector with X, Y (up) and Z coordinates."""
    x: float
    y: float = 0.0
    z: float = 0.0

    def to_2d(self) -> PlanPoint:
        """Return the floor-plane projection (x, z)."""
        return PlanPoint(self.x, self.z)

    def distance_to(self, other: "Point3D") -> float:
        """Calculate 3D distance to another point."""
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def add(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def subtract(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, factor: float) -> "Point3D":
        return Point3D(self.x * factor, self.y * factor, self.z * factor)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalized(self) -> "Point3D":
        length = self.length()
        if length == 0:
            return Point3D(0.0, 0.0, 0.0)
        return self.scale(1.0 / length)

    @classmethod
    def on_floor(cls, x: float, z: float) -> "Point3D":
        return cls(x, 0.0, z)


ZERO = Point3D(0.0, 0.0, 0.0)

PolygonLike = Sequence[Union[PlanPoint, tuple[float, float]]]


@dataclass(frozen=True)
class WallSegment:
    """Wall between two consecutive floor polygon vertices."""
    start: Point3D
    end: Point3D
    normal: Point3D  # unit vector pointing into the room
    length: float
    type: str = "exterior"  # "exterior" or "interior"

    def get_direction(self) -> tuple[float, float]:
        """Get normalized (dx, dz) direction vector."""
        if self.length == 0:
            return (1.0, 0.0)
        return (
            (self.end.x - self.start.x) / self.length,
            (self.end.z - self.start.z) / self.length,
        )

    def midpoint(self) -> Point3D:
        return Point3D(
            (self.start.x + self.end.x) / 2.0,
            0.0,
            (self.start.z + self.end.z) / 2.0,
        )

    def distance_to_point(self, point: Point3D) -> float:
        """Distance on the floor plane from a point to this segment."""
        return distance_point_to_segment(point.to_2d(), self.start.to_2d(), self.end.to_2d())


@dataclass(frozen=True)
class RoomBounds:
    """Immutable snapshot of a room's floor geometry."""
    floor_polygon: tuple[PlanPoint, ...]
    wall_segments: tuple[WallSegment, ...]
    area: float
    usable_area: float
    corners: tuple[Point3D, ...]
    center: Point3D
    perimeter: float = field(default=0.0)

    def get_bounds(self) -> tuple[float, float, float, float]:
        """Get 2D bounding box (min_x, min_z, max_x, max_z)."""
        return polygon_bounds(self.floor_polygon)

    def contains(self, point: Point3D) -> bool:
        return point_in_polygon(point.x, point.z, self.floor_polygon)

    def distance_to_nearest_wall(self, point: Point3D) -> float:
        return min(
            (wall.distance_to_point(point) for wall in self.wall_segments),
            default=math.inf,
        )


def as_plan_points(polygon: PolygonLike) -> tuple[PlanPoint, ...]:
    """Coerce (x, z) pairs, PlanPoints or {"x", "z"} dicts to PlanPoints."""
    points = []
    for p in polygon:
        if isinstance(p, dict):
            points.append(PlanPoint(float(p["x"]), float(p["z"])))
        else:
            points.append(PlanPoint(float(p[0]), float(p[1])))
    return tuple(points)


def point_in_polygon(x: float, z: float, polygon: PolygonLike) -> bool:
    """
    Even-odd ray casting test.

    Points exactly on an edge may fall either side, but the answer is always
    the same for the same input.
    """
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, zi = polygon[i][0], polygon[i][1]
        xj, zj = polygon[j][0], polygon[j][1]
        if (zi > z) != (zj > z):
            x_cross = (xj - xi) * (z - zi) / (zj - zi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def distance_point_to_segment(
    point: tuple[float, float],
    start: tuple[float, float],
    end: tuple[float, float],
) -> float:
    """Distance from a plan point to a line segment."""
    vx = point[0] - start[0]
    vz = point[1] - start[1]
    wx = end[0] - start[0]
    wz = end[1] - start[1]

    seg_len_sq = wx * wx + wz * wz
    if seg_len_sq == 0:
        return math.sqrt(vx * vx + vz * vz)

    t = (vx * wx + vz * wz) / seg_len_sq
    t = max(0.0, min(1.0, t))
    closest_x = start[0] + t * wx
    closest_z = start[1] + t * wz
    dx = point[0] - closest_x
    dz = point[1] - closest_z
    return math.sqrt(dx * dx + dz * dz)


def signed_area(polygon: PolygonLike) -> float:
    """Shoelace signed area; positive for counter-clockwise winding."""
    area = 0.0
    n = len(polygon)
    for i in range(n):
        j = (i + 1) % n
        area += polygon[i][0] * polygon[j][1]
        area -= polygon[j][0] * polygon[i][1]
    return area / 2.0


def polygon_area(polygon: PolygonLike) -> float:
    """Calculate polygon area using the shoelace formula."""
    if len(polygon) < 3:
        return 0.0
    return abs(signed_area(polygon))


def polygon_perimeter(polygon: PolygonLike) -> float:
    perimeter = 0.0
    n = len(polygon)
    for i in range(n):
        current = polygon[i]
        nxt = polygon[(i + 1) % n]
        perimeter += math.hypot(nxt[0] - current[0], nxt[1] - current[1])
    return perimeter


def polygon_centroid(polygon: PolygonLike) -> PlanPoint:
    """Vertex average of the polygon."""
    if not polygon:
        return PlanPoint(0.0, 0.0)
    n = len(polygon)
    return PlanPoint(
        sum(p[0] for p in polygon) / n,
        sum(p[1] for p in polygon) / n,
    )


def polygon_bounds(polygon: PolygonLike) -> tuple[float, float, float, float]:
    """Get 2D bounding box (min_x, min_z, max_x, max_z)."""
    if not polygon:
        return (0.0, 0.0, 0.0, 0.0)
    xs = [p[0] for p in polygon]
    zs = [p[1] for p in polygon]
    return (min(xs), min(zs), max(xs), max(zs))


def ensure_counter_clockwise(polygon: PolygonLike) -> tuple[PlanPoint, ...]:
    """Return the polygon with counter-clockwise winding."""
    points = as_plan_points(polygon)
    if signed_area(points) < 0:
        return tuple(reversed(points))
    return points


def normalize_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


def plan_distance(a: Point3D, b: Point3D) -> float:
    """Distance between two points projected on the floor plane."""
    return math.hypot(a.x - b.x, a.z - b.z)
