"""
Scene snapshot types consumed by the planning services.

The renderer is never touched directly: callers hand in plain snapshots of
scene objects and a ``MeshProvider`` that resolves a room id to its floor
polygon and wall/door/window constraints.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .geometry import PlanPoint, Point3D, ZERO


STRUCTURAL_TYPES = {"custom-room", "ground"}


@dataclass(frozen=True)
class Dimensions:
    """Axis-aligned object size in meters."""
    width: float
    height: float
    depth: float


@dataclass(frozen=True)
class RoomObjectExtensions:
    """Extra data carried only by room objects."""
    floor_polygon: tuple[PlanPoint, ...] = ()
    grid_info: Optional[dict] = None


@dataclass(frozen=True)
class SceneObject:
    """Snapshot of one object in the scene."""
    id: str
    type: str
    position: Point3D
    rotation: Point3D = ZERO
    scale: Point3D = Point3D(1.0, 1.0, 1.0)
    actual_dimensions: Optional[Dimensions] = None
    extensions: Optional[RoomObjectExtensions] = None


def is_structural(obj: SceneObject) -> bool:
    """Rooms, ground planes and house shells are not furniture."""
    return obj.type in STRUCTURAL_TYPES or obj.type.startswith("house-")


def furniture_only(objects: list[SceneObject]) -> list[SceneObject]:
    return [obj for obj in objects if not is_structural(obj)]


@dataclass(frozen=True)
class RoomConstraint:
    """Wall, door or window attached to a room."""
    id: str
    type: str  # "wall", "door" or "window"
    position: Point3D
    dimensions: Dimensions = Dimensions(0.9, 2.1, 0.1)
    rotation: float = 0.0  # radians about the up axis
    is_fire_exit: bool = False


@dataclass(frozen=True)
class MeshSnapshot:
    """Everything the planner needs to know about a room mesh."""
    id: str
    floor_polygon: tuple[PlanPoint, ...]
    constraints: tuple[RoomConstraint, ...] = ()
    position: Point3D = ZERO
    rotation: Point3D = ZERO
    scale: Point3D = Point3D(1.0, 1.0, 1.0)
    bounding_box: Optional[tuple[Point3D, Point3D]] = None

    def constraints_of_type(self, constraint_type: str) -> list[RoomConstraint]:
        return [c for c in self.constraints if c.type == constraint_type]


class MeshProvider(Protocol):
    """Narrow collaborator used to resolve room ids."""

    def get_mesh_snapshot(self, mesh_id: str) -> Optional[MeshSnapshot]:
        ...


@dataclass
class StaticMeshProvider:
    """Dictionary-backed ``MeshProvider``."""
    snapshots: dict[str, MeshSnapshot] = field(default_factory=dict)

    def add(self, snapshot: MeshSnapshot) -> None:
        self.snapshots[snapshot.id] = snapshot

    def get_mesh_snapshot(self, mesh_id: str) -> Optional[MeshSnapshot]:
        return self.snapshots.get(mesh_id)
