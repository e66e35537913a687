"""
Static furniture dimension and clearance tables.

Read-only reference data keyed by object type. Measured bounding boxes on a
scene object take precedence over the table dimensions.
"""

from dataclasses import dataclass
from typing import Optional

from .scene import Dimensions, SceneObject


@dataclass(frozen=True)
class ClearanceRequirements:
    """Clearances (m) needed on each side of a piece of furniture."""
    front: float
    back: float
    sides: float
    access: float


@dataclass(frozen=True)
class FurnitureSpec:
    type: str
    category: str  # desk, seating, table, bed, storage, electronics, appliance, other
    dimensions: Dimensions
    clearance: ClearanceRequirements
    wall_placement: str = "none"  # "required", "preferred" or "none"


def _spec(type_, category, size, clearance, wall_placement="none") -> FurnitureSpec:
    return FurnitureSpec(
        type=type_,
        category=category,
        dimensions=Dimensions(*size),
        clearance=ClearanceRequirements(*clearance),
        wall_placement=wall_placement,
    )


# (width, height, depth), (front, back, sides, access)
FURNITURE_SPECS: dict[str, FurnitureSpec] = {
    spec.type: spec
    for spec in [
        _spec("Chair", "seating", (0.6, 0.9, 0.6), (0.6, 0.3, 0.2, 0.6)),
        _spec("Desk", "desk", (1.2, 0.75, 0.8), (0.9, 0.1, 0.3, 1.2), "preferred"),
        _spec("Standing Desk", "desk", (1.2, 1.1, 0.8), (0.7, 0.1, 0.3, 1.0), "preferred"),
        _spec("Adjustable Desk", "desk", (1.2, 0.75, 0.8), (0.9, 0.1, 0.3, 1.2), "preferred"),
        _spec("Table", "table", (1.5, 0.75, 0.9), (0.8, 0.8, 0.8, 0.9)),
        _spec("Simple table", "table", (1.2, 0.75, 0.8), (0.6, 0.6, 0.6, 0.8)),
        _spec("Conference Table", "table", (3.0, 0.75, 1.2), (1.0, 1.0, 1.0, 1.2)),
        _spec("Sofa", "seating", (2.0, 0.8, 0.9), (1.0, 0.1, 0.3, 1.0), "preferred"),
        _spec("Couch Small", "seating", (1.8, 0.8, 0.9), (0.9, 0.1, 0.3, 0.9), "preferred"),
        _spec("Bed Single", "bed", (1.0, 0.5, 2.0), (0.6, 0.05, 0.6, 0.8), "preferred"),
        _spec("Bed Double", "bed", (1.6, 0.5, 2.0), (0.6, 0.05, 0.6, 0.9), "preferred"),
        _spec("Bookcase", "storage", (0.8, 1.8, 0.3), (0.9, 0.0, 0.1, 0.9), "required"),
        _spec("wooden bookshelf", "storage", (0.8, 1.8, 0.3), (0.9, 0.0, 0.1, 0.9), "required"),
        _spec("TV", "electronics", (1.2, 0.7, 0.1), (2.0, 0.0, 0.2, 1.5), "required"),
        _spec("Refrigerator", "appliance", (0.7, 1.8, 0.7), (1.0, 0.05, 0.1, 1.0), "required"),
    ]
}

# Scene primitives have no clearance rules but do occupy space.
PRIMITIVE_DIMENSIONS: dict[str, Dimensions] = {
    "cube": Dimensions(2.0, 2.0, 2.0),
    "sphere": Dimensions(2.0, 2.0, 2.0),
    "cylinder": Dimensions(2.0, 2.0, 2.0),
    "plane": Dimensions(2.0, 0.1, 2.0),
    "torus": Dimensions(2.0, 0.5, 2.0),
    "cone": Dimensions(2.0, 2.0, 2.0),
}

GENERIC_DIMENSIONS = Dimensions(1.0, 1.0, 1.0)
GENERIC_CLEARANCE = ClearanceRequirements(front=0.6, back=0.3, sides=0.3, access=0.8)


def get_spec(object_type: str) -> Optional[FurnitureSpec]:
    return FURNITURE_SPECS.get(object_type)


def base_dimensions(object_type: str) -> Dimensions:
    spec = FURNITURE_SPECS.get(object_type)
    if spec:
        return spec.dimensions
    return PRIMITIVE_DIMENSIONS.get(object_type, GENERIC_DIMENSIONS)


def dimensions_for(obj: SceneObject) -> Dimensions:
    """Measured size when known, otherwise table size times object scale."""
    if obj.actual_dimensions is not None:
        return obj.actual_dimensions

    base = base_dimensions(obj.type)
    return Dimensions(
        base.width * obj.scale.x,
        base.height * obj.scale.y,
        base.depth * obj.scale.z,
    )


def spec_for(obj: SceneObject) -> FurnitureSpec:
    """Build the spec for a scene object, honouring its actual size."""
    spec = FURNITURE_SPECS.get(obj.type)
    if spec is None:
        return FurnitureSpec(
            type=obj.type,
            category="other",
            dimensions=dimensions_for(obj),
            clearance=GENERIC_CLEARANCE,
        )
    return FurnitureSpec(
        type=spec.type,
        category=spec.category,
        dimensions=dimensions_for(obj),
        clearance=spec.clearance,
        wall_placement=spec.wall_placement,
    )


def footprint_bounds(obj: SceneObject, padding: float = 0.0) -> tuple[float, float, float, float]:
    """Axis-aligned footprint (min_x, min_z, max_x, max_z) with optional padding."""
    dims = dimensions_for(obj)
    half_width = dims.width / 2.0 + padding
    half_depth = dims.depth / 2.0 + padding
    return (
        obj.position.x - half_width,
        obj.position.z - half_depth,
        obj.position.x + half_width,
        obj.position.z + half_depth,
    )
