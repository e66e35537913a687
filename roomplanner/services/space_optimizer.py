"""
Grid based furniture placement engine.

Given a room and a furniture type, works out how many instances fit and
where: the room's bounding box is sampled on a regular grid, cells that are
too close to walls or existing furniture are discarded, and the remaining
cells are accepted greedily in strategy order as long as their clearance
circles do not overlap.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Optional, Union
import logging
import math
import statistics

from ..conf import get_setting
from .furniture_catalog import dimensions_for
from .geometry import Point3D, PolygonLike, RoomBounds, ZERO, point_in_polygon, polygon_bounds
from .room_analyzer import analyze_room_geometry
from .scene import SceneObject, furniture_only


logger = logging.getLogger(__name__)

STRATEGIES = ("maximize", "comfort", "ergonomic", "aesthetic")

NO_PLACEMENTS_WARNING = (
    "No valid placements found. Room may be too small or constraints too strict."
)
HIGH_DENSITY_WARNING = (
    "Space utilization is very high. Consider reducing objects for better comfort."
)
ACCESSIBILITY_WARNING = (
    "Some placements may not meet accessibility requirements (minimum 90cm pathways)."
)


@dataclass(frozen=True)
class SpaceOptimizationConfig:
    object_type: str
    min_clearance: float
    access_clearance: float
    wall_offset: float
    corner_usage: bool
    grouping: bool
    grid_resolution: float = 0.2

    @property
    def clearance_radius(self) -> float:
        return max(self.min_clearance, self.access_clearance)


@dataclass(frozen=True)
class GridCell:
    x: int
    z: int
    world_position: Point3D
    is_valid: bool
    is_occupied: bool
    distance_to_wall: float
    is_corner: bool
    clearance_radius: float


@dataclass
class PlacementGrid:
    cells: list[list[GridCell]]
    resolution: float
    bounds: tuple[float, float, float, float]  # min_x, min_z, max_x, max_z
    width: int
    height: int

    def iter_cells(self):
        for column in self.cells:
            yield from column


@dataclass(frozen=True)
class AccessZone:
    center: Point3D
    radius: float
    type: str  # front, back, side, corner
    required: bool


@dataclass(frozen=True)
class PlacementLayout:
    id: str
    position: Point3D
    rotation: Point3D
    clearance_radius: float
    access_zones: tuple[AccessZone, ...] = ()
    group_id: Optional[str] = None


@dataclass
class OptimizationResult:
    max_objects: int
    layouts: list[PlacementLayout]
    efficiency: float
    warnings: list[str] = field(default_factory=list)
    alternative_layouts: list[list[PlacementLayout]] = field(default_factory=list)
    strategy: str = "maximize"
    config: Optional[SpaceOptimizationConfig] = None


def _config(object_type, min_clearance, access_clearance, wall_offset,
            corner_usage, grouping, grid_resolution):
    return SpaceOptimizationConfig(
        object_type=object_type,
        min_clearance=min_clearance,
        access_clearance=access_clearance,
        wall_offset=wall_offset,
        corner_usage=corner_usage,
        grouping=grouping,
        grid_resolution=grid_resolution,
    )


DEFAULT_CONFIGS = [
    # Desks need room for a chair and walking behind it
    _config("Desk", 0.3, 1.2, 0.1, True, True, 0.2),
    _config("Chair", 0.2, 0.6, 0.1, False, True, 0.2),
    _config("Table", 0.5, 0.8, 0.2, False, False, 0.2),
    _config("Sofa", 0.4, 1.0, 0.1, True, False, 0.3),
    _config("Bed Single", 0.6, 0.8, 0.1, True, False, 0.3),
    _config("Bookcase", 0.2, 0.9, 0.05, True, True, 0.2),
]

CONFIG_FIELDS = {f.name for f in fields(SpaceOptimizationConfig)} - {"object_type"}


class SpaceOptimizer:
    """Computes furniture capacity and placements for a single room."""

    RAY_STEP = 0.1
    RAY_DIRECTIONS = (
        (1.0, 0.0),
        (-1.0, 0.0),
        (0.0, 1.0),
        (0.0, -1.0),
        (0.707, 0.707),
        (-0.707, 0.707),
        (0.707, -0.707),
        (-0.707, -0.707),
    )
    MIN_OCCUPANCY_PADDING = 0.3
    MAX_EFFICIENCY = 0.8
    MIN_ACCESS_RADIUS = 0.9
    EXISTING_PROXIMITY = 1.0

    def __init__(self):
        self._configs: dict[str, SpaceOptimizationConfig] = {
            config.object_type: config for config in DEFAULT_CONFIGS
        }

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def get_default_config(self, object_type: str) -> Optional[SpaceOptimizationConfig]:
        return self._configs.get(object_type)

    def set_object_config(self, object_type: str, config: SpaceOptimizationConfig) -> None:
        self._configs[object_type] = replace(config, object_type=object_type)

    def resolve_config(
        self,
        object_type: str,
        overrides: Optional[dict] = None,
    ) -> SpaceOptimizationConfig:
        """Defaults for a type with overrides applied; generic values for unknown types."""
        config = self._configs.get(object_type)
        if config is None:
            logger.warning(
                "No default config for %s, using generic configuration", object_type
            )
            config = _config(
                object_type, 0.5, 0.8, 0.2, False, False,
                get_setting("DEFAULT_GRID_RESOLUTION"),
            )

        if overrides:
            unknown = set(overrides) - CONFIG_FIELDS
            if unknown:
                logger.warning("Ignoring unknown config overrides: %s", sorted(unknown))
            config = replace(
                config, **{k: v for k, v in overrides.items() if k in CONFIG_FIELDS}
            )

        if config.grid_resolution <= 0:
            raise ValueError("grid_resolution must be positive")
        if config.min_clearance < 0 or config.access_clearance < 0:
            raise ValueError("clearances must not be negative")
        return config

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def optimize_space(
        self,
        room: Union[RoomBounds, PolygonLike],
        object_type: str,
        strategy: str = "maximize",
        config_overrides: Optional[dict] = None,
        existing_objects: Optional[list[SceneObject]] = None,
    ) -> OptimizationResult:
        """
        Find the maximum number of ``object_type`` placements for a room.

        Args:
            room: analyzed room or a raw floor polygon
            object_type: furniture type key
            strategy: one of "maximize", "comfort", "ergonomic", "aesthetic"
            config_overrides: partial ``SpaceOptimizationConfig`` fields
            existing_objects: scene objects already in the room

        Returns:
            OptimizationResult with layouts, efficiency and warnings. Finding
            no placement is not an error; it is reported in ``warnings``.
        """
        if not isinstance(room, RoomBounds):
            room = analyze_room_geometry(room)
        existing_objects = existing_objects or []

        logger.info("Starting space optimization for %s (%s)", object_type, strategy)

        config = self.resolve_config(object_type, config_overrides)
        grid = self.build_placement_grid(room, config, existing_objects)
        candidates = self.filter_valid_cells(grid, config)

        layouts = self.generate_layouts(candidates, room, config, strategy)
        if strategy == "maximize":
            layouts = self.densest_layouts(layouts, room, config, existing_objects)
        efficiency = self.calculate_efficiency(layouts, room)
        warnings = self.generate_warnings(layouts, efficiency, existing_objects)

        alternatives = []
        for other in STRATEGIES:
            if other == strategy:
                continue
            alternative = self.generate_layouts(candidates, room, config, other)
            if alternative:
                alternatives.append(alternative)

        logger.info(
            "Optimization complete: %d objects, %.1f%% efficiency",
            len(layouts), efficiency * 100,
        )

        return OptimizationResult(
            max_objects=len(layouts),
            layouts=layouts,
            efficiency=efficiency,
            warnings=warnings,
            alternative_layouts=alternatives,
            strategy=strategy,
            config=config,
        )

    # ------------------------------------------------------------------
    # Grid
    # ------------------------------------------------------------------
    def build_placement_grid(
        self,
        room: RoomBounds,
        config: SpaceOptimizationConfig,
        existing_objects: Optional[list[SceneObject]] = None,
    ) -> PlacementGrid:
        blockers = self._blocking_objects(existing_objects or [])
        min_x, min_z, max_x, max_z = polygon_bounds(room.floor_polygon)
        resolution = config.grid_resolution
        width = math.ceil((max_x - min_x) / resolution)
        height = math.ceil((max_z - min_z) / resolution)

        cells = []
        for i in range(width):
            column = []
            for j in range(height):
                position = Point3D.on_floor(min_x + i * resolution, min_z + j * resolution)
                inside = point_in_polygon(position.x, position.z, room.floor_polygon)
                wall_distance = room.distance_to_nearest_wall(position)
                is_corner = any(
                    position.distance_to(corner) < resolution * 2 for corner in room.corners
                )
                occupied = self._is_occupied(position, blockers, config)
                clearance = self.calculate_available_clearance(position, room, config, blockers)

                column.append(GridCell(
                    x=i,
                    z=j,
                    world_position=position,
                    is_valid=inside and wall_distance >= config.wall_offset and not occupied,
                    is_occupied=occupied,
                    distance_to_wall=wall_distance,
                    is_corner=is_corner,
                    clearance_radius=clearance,
                ))
            cells.append(column)

        return PlacementGrid(
            cells=cells,
            resolution=resolution,
            bounds=(min_x, min_z, max_x, max_z),
            width=width,
            height=height,
        )

    @staticmethod
    def _blocking_objects(existing_objects: list[SceneObject]) -> list[SceneObject]:
        # Placements from an earlier optimization run do not block a new one.
        return [
            obj for obj in furniture_only(existing_objects)
            if not obj.id.startswith("optimized-")
        ]

    def _is_occupied(
        self,
        position: Point3D,
        blockers: list[SceneObject],
        config: SpaceOptimizationConfig,
    ) -> bool:
        padding = max(config.min_clearance, self.MIN_OCCUPANCY_PADDING)
        for obj in blockers:
            dims = dimensions_for(obj)
            if (
                abs(position.x - obj.position.x) <= dims.width / 2 + padding
                and abs(position.z - obj.position.z) <= dims.depth / 2 + padding
            ):
                return True
        return False

    def calculate_available_clearance(
        self,
        position: Point3D,
        room: RoomBounds,
        config: SpaceOptimizationConfig,
        blockers: list[SceneObject],
    ) -> float:
        """
        Ray-march outwards in eight directions and return the shortest free run.

        A ray stops at the first sample outside the polygon or inside a padded
        furniture footprint. The result is capped at the config's clearance
        radius plus one meter.
        """
        max_clearance = config.clearance_radius + 1.0
        steps = int(round(max_clearance / self.RAY_STEP))
        clearance = max_clearance

        for dx, dz in self.RAY_DIRECTIONS:
            for k in range(1, steps + 1):
                distance = k * self.RAY_STEP
                if distance >= clearance:
                    break
                x = position.x + dx * distance
                z = position.z + dz * distance
                if not point_in_polygon(x, z, room.floor_polygon) or (
                    blockers and self._is_occupied(Point3D.on_floor(x, z), blockers, config)
                ):
                    clearance = distance
                    break
        return clearance

    def filter_valid_cells(
        self,
        grid: PlacementGrid,
        config: SpaceOptimizationConfig,
    ) -> list[GridCell]:
        valid = []
        for cell in grid.iter_cells():
            if not cell.is_valid or cell.is_occupied:
                continue
            if cell.clearance_radius < config.min_clearance:
                continue
            if cell.is_corner and not config.corner_usage:
                continue
            if cell.distance_to_wall < config.wall_offset:
                continue
            valid.append(cell)
        return valid

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def sort_cells(
        self,
        cells: list[GridCell],
        room: RoomBounds,
        strategy: str,
    ) -> list[GridCell]:
        """Order candidates for a strategy. All sorts are stable."""
        if strategy == "maximize":
            def packing_score(cell):
                return (2 if cell.is_corner else 0) + (1 if cell.distance_to_wall < 0.5 else 0)
            return sorted(cells, key=packing_score, reverse=True)

        if strategy == "comfort":
            return sorted(cells, key=lambda cell: cell.clearance_radius, reverse=True)

        if strategy == "ergonomic":
            return sorted(
                cells,
                key=lambda cell: cell.world_position.distance_to(room.center),
                reverse=True,
            )

        if strategy == "aesthetic":
            if not cells:
                return []
            distances = [cell.world_position.distance_to(room.center) for cell in cells]
            median = statistics.median(distances)
            order = sorted(range(len(cells)), key=lambda i: abs(distances[i] - median))
            return [cells[i] for i in order]

        logger.warning("Unknown optimization strategy %r, keeping grid order", strategy)
        return list(cells)

    def generate_layouts(
        self,
        cells: list[GridCell],
        room: RoomBounds,
        config: SpaceOptimizationConfig,
        strategy: str,
    ) -> list[PlacementLayout]:
        layouts = []
        radius = config.clearance_radius

        for cell in self.sort_cells(cells, room, strategy):
            position = cell.world_position
            if any(
                position.distance_to(layout.position) < radius + layout.clearance_radius
                for layout in layouts
            ):
                continue

            layouts.append(PlacementLayout(
                id=f"{config.object_type}-{len(layouts) + 1}",
                position=position,
                rotation=self._rotation_for(position, room, config),
                clearance_radius=radius,
                access_zones=self._access_zones(position, config),
            ))
        return layouts

    def densest_layouts(
        self,
        layouts: list[PlacementLayout],
        room: RoomBounds,
        config: SpaceOptimizationConfig,
        existing_objects: list[SceneObject],
    ) -> list[PlacementLayout]:
        """
        Best "maximize" packing over the requested grid and every coarser one.

        Greedy packing on grids that are not aligned can lose a seat when the
        grid gets finer. Packing each ``GRID_RESOLUTION_LADDER`` step coarser
        than the requested resolution as well, and keeping the largest result,
        means a finer request never places fewer objects than a coarser one.
        Ties keep the requested grid.
        """
        best = layouts
        for resolution in sorted(get_setting("GRID_RESOLUTION_LADDER")):
            if resolution <= config.grid_resolution:
                continue
            coarse = replace(config, grid_resolution=resolution)
            grid = self.build_placement_grid(room, coarse, existing_objects)
            packed = self.generate_layouts(
                self.filter_valid_cells(grid, coarse), room, coarse, "maximize"
            )
            if len(packed) > len(best):
                logger.debug(
                    "Grid %.2fm packs %d %s, more than %d at %.2fm",
                    resolution, len(packed), config.object_type,
                    len(best), config.grid_resolution,
                )
                best = packed
        return best

    @staticmethod
    def _rotation_for(position: Point3D, room: RoomBounds, config: SpaceOptimizationConfig) -> Point3D:
        # Only furniture used from one side is turned to face the room center.
        if config.access_clearance <= config.min_clearance:
            return ZERO
        dx = room.center.x - position.x
        dz = room.center.z - position.z
        if dx == 0 and dz == 0:
            return ZERO
        return Point3D(0.0, math.atan2(dx, dz), 0.0)

    @staticmethod
    def _access_zones(position: Point3D, config: SpaceOptimizationConfig) -> tuple[AccessZone, ...]:
        zones = []
        if config.access_clearance > 0:
            zones.append(AccessZone(
                center=position.add(Point3D(0.0, 0.0, config.access_clearance / 2)),
                radius=config.access_clearance,
                type="front",
                required=True,
            ))
        if config.min_clearance > 0:
            for side in (1.0, -1.0):
                zones.append(AccessZone(
                    center=position.add(Point3D(side * config.min_clearance / 2, 0.0, 0.0)),
                    radius=config.min_clearance,
                    type="side",
                    required=False,
                ))
        return tuple(zones)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------
    @staticmethod
    def calculate_efficiency(layouts: list[PlacementLayout], room: RoomBounds) -> float:
        """Share of usable area covered by clearance circles, capped at 1."""
        if not layouts:
            return 0.0
        used = sum(math.pi * layout.clearance_radius ** 2 for layout in layouts)
        if room.usable_area <= 0:
            return 1.0
        return min(1.0, used / room.usable_area)

    def generate_warnings(
        self,
        layouts: list[PlacementLayout],
        efficiency: float,
        existing_objects: list[SceneObject],
    ) -> list[str]:
        warnings = []
        furniture = furniture_only(existing_objects)

        if not layouts:
            warnings.append(NO_PLACEMENTS_WARNING)
            if furniture:
                warnings.append(
                    f"Room contains {len(furniture)} existing object(s) "
                    "which may be limiting placement options."
                )

        if efficiency > self.MAX_EFFICIENCY:
            warnings.append(HIGH_DENSITY_WARNING)

        if any(
            zone.required and zone.radius < self.MIN_ACCESS_RADIUS
            for layout in layouts
            for zone in layout.access_zones
        ):
            warnings.append(ACCESSIBILITY_WARNING)

        if furniture and layouts:
            too_close = sum(
                1 for layout in layouts
                if any(
                    layout.position.distance_to(obj.position) < self.EXISTING_PROXIMITY
                    for obj in furniture
                )
            )
            if too_close:
                warnings.append(
                    f"{too_close} object(s) may be placed too close to existing furniture."
                )
        return warnings
