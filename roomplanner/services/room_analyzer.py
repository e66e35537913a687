"""
Room geometry analysis.

Turns a floor polygon and the room's wall/door/window metadata into the
derived structures every other planning service works from: wall segments,
usable area, accessibility paths between doors and placement zones.
"""

from dataclasses import dataclass, field
import logging
import math

from shapely.geometry import LineString, Point, Polygon, box
from shapely.ops import unary_union

from ..conf import get_setting
from .errors import InvalidGeometryError
from .furniture_catalog import FURNITURE_SPECS, footprint_bounds
from .geometry import (
    Point3D,
    PolygonLike,
    RoomBounds,
    WallSegment,
    as_plan_points,
    ensure_counter_clockwise,
    point_in_polygon,
    polygon_area,
    polygon_bounds,
    polygon_centroid,
    polygon_perimeter,
)
from .scene import Dimensions, MeshSnapshot, RoomConstraint, SceneObject, is_structural


logger = logging.getLogger(__name__)


def analyze_room_geometry(floor_polygon: PolygonLike) -> RoomBounds:
    """
    Derive a ``RoomBounds`` snapshot from a floor polygon.

    Wall normals are computed on the counter-clockwise version of the
    polygon, so they point into the room whatever winding the caller used.
    The returned ``floor_polygon`` keeps the caller's vertex order.

    Raises:
        InvalidGeometryError: fewer than three vertices or zero area.
    """
    points = as_plan_points(floor_polygon)
    if len(points) < 3:
        raise InvalidGeometryError(
            f"Floor polygon needs at least 3 points, got {len(points)}"
        )

    area = polygon_area(points)
    if area == 0:
        raise InvalidGeometryError("Floor polygon has zero area")

    ccw = ensure_counter_clockwise(points)
    walls = []
    for i, start in enumerate(ccw):
        end = ccw[(i + 1) % len(ccw)]
        dx = end.x - start.x
        dz = end.z - start.z
        length = math.hypot(dx, dz)
        if length == 0:
            normal = Point3D(0.0, 0.0, 0.0)
        else:
            # Left-hand perpendicular points inward for CCW winding.
            normal = Point3D(-dz / length, 0.0, dx / length)
        walls.append(WallSegment(
            start=Point3D.on_floor(start.x, start.z),
            end=Point3D.on_floor(end.x, end.z),
            normal=normal,
            length=length,
            type="exterior",
        ))

    perimeter = polygon_perimeter(points)
    usable_area = max(0.0, area - perimeter * get_setting("WALL_BUFFER"))
    center = polygon_centroid(points)

    return RoomBounds(
        floor_polygon=points,
        wall_segments=tuple(walls),
        area=area,
        usable_area=usable_area,
        corners=tuple(Point3D.on_floor(p.x, p.z) for p in points),
        center=Point3D.on_floor(center.x, center.z),
        perimeter=perimeter,
    )


@dataclass(frozen=True)
class AccessibilityPath:
    """Straight walking segment between a door and another point of interest."""
    id: str
    start: Point3D
    end: Point3D
    width: float
    blocked_by: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlacementZone:
    """Square patch of floor classified by how usable it is."""
    id: str
    type: str  # optimal, good, acceptable, poor, restricted
    center: Point3D
    bounds: tuple[float, float, float, float]
    area: float
    clearance_score: float
    accessibility_score: float
    recommended_for: tuple[str, ...] = ()
    constraints: tuple[str, ...] = ()

    def contains(self, point: Point3D) -> bool:
        min_x, min_z, max_x, max_z = self.bounds
        return min_x <= point.x <= max_x and min_z <= point.z <= max_z


@dataclass
class RoomAnalysisResult:
    room_id: str
    room_geometry: RoomBounds
    constraints: list[RoomConstraint] = field(default_factory=list)
    accessibility_paths: list[AccessibilityPath] = field(default_factory=list)
    placement_zones: list[PlacementZone] = field(default_factory=list)
    furniture_ids: list[str] = field(default_factory=list)

    @property
    def doors(self) -> list[RoomConstraint]:
        return [c for c in self.constraints if c.type == "door"]

    @property
    def windows(self) -> list[RoomConstraint]:
        return [c for c in self.constraints if c.type == "window"]

    def zones_of_type(self, *zone_types: str) -> list[PlacementZone]:
        return [z for z in self.placement_zones if z.type in zone_types]

    def zone_at(self, point: Point3D):
        for zone in self.placement_zones:
            if zone.contains(point):
                return zone
        return None


def footprint_polygon(obj: SceneObject, padding: float = 0.0) -> Polygon:
    """Axis-aligned footprint of an object as a shapely box."""
    return box(*footprint_bounds(obj, padding))


class RoomAnalyzer:
    """Builds ``RoomAnalysisResult`` objects from mesh snapshots."""

    # Zone classification thresholds on the free-area ratio
    ZONE_THRESHOLDS = (
        (0.85, "optimal"),
        (0.7, "good"),
        (0.5, "acceptable"),
        (0.3, "poor"),
    )
    DOOR_SWING_RADIUS = 1.0

    def analyze_room(
        self,
        snapshot: MeshSnapshot,
        scene_objects: list[SceneObject],
        room_id: str,
    ) -> RoomAnalysisResult:
        room = analyze_room_geometry(snapshot.floor_polygon)
        furniture = self.furniture_in_room(room, scene_objects)
        constraints = self._collect_constraints(snapshot, room)
        doors = [c for c in constraints if c.type == "door"]

        footprints = {obj.id: footprint_polygon(obj) for obj in furniture}
        paths = self._build_paths(room, doors, footprints)
        zones = self._build_zones(room, doors, footprints)

        logger.info(
            "Analyzed room %s: area=%.2f m², %d objects, %d paths, %d zones",
            room_id, room.area, len(furniture), len(paths), len(zones),
        )

        return RoomAnalysisResult(
            room_id=room_id,
            room_geometry=room,
            constraints=constraints,
            accessibility_paths=paths,
            placement_zones=zones,
            furniture_ids=[obj.id for obj in furniture],
        )

    @staticmethod
    def furniture_in_room(room: RoomBounds, scene_objects: list[SceneObject]) -> list[SceneObject]:
        """Non-structural objects whose position lies inside the floor polygon."""
        return [
            obj for obj in scene_objects
            if not is_structural(obj)
            and point_in_polygon(obj.position.x, obj.position.z, room.floor_polygon)
        ]

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------
    def _collect_constraints(self, snapshot: MeshSnapshot, room: RoomBounds) -> list[RoomConstraint]:
        constraints = list(snapshot.constraints)
        if any(c.type == "wall" for c in constraints):
            return constraints

        for i, wall in enumerate(room.wall_segments):
            dx, dz = wall.get_direction()
            constraints.append(RoomConstraint(
                id=f"{snapshot.id}-wall-{i}",
                type="wall",
                position=wall.midpoint(),
                dimensions=Dimensions(wall.length, 2.5, 0.1),
                rotation=math.atan2(dz, dx),
            ))
        return constraints

    # ------------------------------------------------------------------
    # Accessibility paths
    # ------------------------------------------------------------------
    def _build_paths(
        self,
        room: RoomBounds,
        doors: list[RoomConstraint],
        footprints: dict[str, Polygon],
    ) -> list[AccessibilityPath]:
        paths = []
        for door in doors:
            paths.append(self._measure_path(
                f"path-{door.id}-center", door.position, room.center, footprints
            ))

        for i, door_a in enumerate(doors):
            for door_b in doors[i + 1:]:
                paths.append(self._measure_path(
                    f"path-{door_a.id}-{door_b.id}", door_a.position, door_b.position, footprints
                ))
        return paths

    def _measure_path(
        self,
        path_id: str,
        start: Point3D,
        end: Point3D,
        footprints: dict[str, Polygon],
    ) -> AccessibilityPath:
        nominal = get_setting("PATH_NOMINAL_WIDTH")
        start = Point3D.on_floor(start.x, start.z)
        end = Point3D.on_floor(end.x, end.z)
        if start.distance_to(end) == 0:
            line = Point(start.x, start.z)
        else:
            line = LineString([(start.x, start.z), (end.x, end.z)])

        width = nominal
        blocked_by = []
        for obj_id, footprint in footprints.items():
            distance = line.distance(footprint)
            width = min(width, 2.0 * distance)
            if distance < nominal / 2.0:
                blocked_by.append(obj_id)

        return AccessibilityPath(
            id=path_id,
            start=start,
            end=end,
            width=width,
            blocked_by=tuple(blocked_by),
        )

    # ------------------------------------------------------------------
    # Placement zones
    # ------------------------------------------------------------------
    def _build_zones(
        self,
        room: RoomBounds,
        doors: list[RoomConstraint],
        footprints: dict[str, Polygon],
    ) -> list[PlacementZone]:
        size = get_setting("ZONE_SIZE")
        room_poly = Polygon([(p.x, p.z) for p in room.floor_polygon])
        if not room_poly.is_valid:
            room_poly = room_poly.buffer(0)
        occupied = unary_union(list(footprints.values())) if footprints else None

        min_x, min_z, max_x, max_z = polygon_bounds(room.floor_polygon)
        diagonal = math.hypot(max_x - min_x, max_z - min_z) or 1.0
        cols = max(1, math.ceil((max_x - min_x) / size))
        rows = max(1, math.ceil((max_z - min_z) / size))

        zones = []
        for row in range(rows):
            for col in range(cols):
                cell = box(
                    min_x + col * size,
                    min_z + row * size,
                    min_x + (col + 1) * size,
                    min_z + (row + 1) * size,
                )
                inside = cell.intersection(room_poly)
                if inside.is_empty or inside.area == 0:
                    continue

                free = inside.difference(occupied) if occupied is not None else inside
                clearance_score = free.area / cell.area
                centroid = inside.centroid
                center = Point3D.on_floor(centroid.x, centroid.y)

                door_distance = min(
                    (center.distance_to(Point3D.on_floor(d.position.x, d.position.z)) for d in doors),
                    default=None,
                )
                if door_distance is None:
                    accessibility_score = 0.5
                else:
                    accessibility_score = max(0.0, 1.0 - door_distance / diagonal)

                zone_type = self._classify_zone(clearance_score)
                if door_distance is not None and door_distance < self.DOOR_SWING_RADIUS:
                    zone_type = "restricted"

                overlapping = tuple(
                    obj_id for obj_id, fp in footprints.items() if fp.intersects(cell)
                )
                recommended = () if zone_type == "restricted" else self._recommend_types(
                    free.area, cell.bounds
                )

                zones.append(PlacementZone(
                    id=f"zone-{col}-{row}",
                    type=zone_type,
                    center=center,
                    bounds=tuple(cell.bounds),
                    area=free.area,
                    clearance_score=clearance_score,
                    accessibility_score=accessibility_score,
                    recommended_for=recommended,
                    constraints=overlapping,
                ))
        return zones

    def _classify_zone(self, ratio: float) -> str:
        for threshold, zone_type in self.ZONE_THRESHOLDS:
            if ratio >= threshold:
                return zone_type
        return "restricted"

    @staticmethod
    def _recommend_types(free_area: float, cell_bounds) -> tuple[str, ...]:
        cell_w = cell_bounds[2] - cell_bounds[0]
        cell_d = cell_bounds[3] - cell_bounds[1]
        fits = []
        for spec in FURNITURE_SPECS.values():
            w, d = spec.dimensions.width, spec.dimensions.depth
            if w * d > free_area:
                continue
            if (w <= cell_w and d <= cell_d) or (d <= cell_w and w <= cell_d):
                fits.append(spec.type)
        return tuple(fits)
