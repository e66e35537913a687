"""
Furniture association rules.

A primary piece of furniture (desk, table, TV...) usually comes with
companions (chairs, sofa, nightstands). The table below says which, how many
and where they go relative to the primary.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
import math

from .geometry import Point3D, RoomBounds


PRIORITY_LEVELS = {"required": 3, "preferred": 2, "optional": 1}


@dataclass(frozen=True)
class AssociatedType:
    type: str
    quantity: int
    positioning: str  # around, facing, adjacent, opposite
    distance: float  # meters from the primary
    priority: str  # required, preferred, optional


@dataclass(frozen=True)
class FurnitureAssociation:
    primary_type: str
    associated_types: tuple[AssociatedType, ...]
    description: str
    category: str  # office, dining, meeting, living, bedroom, classroom


@dataclass(frozen=True)
class AssociatedObject:
    type: str
    position: Point3D
    rotation: Point3D
    group_id: str


@dataclass
class AssociationPlacement:
    primary_position: Point3D
    primary_rotation: Point3D
    associated_objects: list[AssociatedObject] = field(default_factory=list)


@dataclass(frozen=True)
class ExpandedItem:
    type: str
    quantity: int
    priority: str  # primary or secondary


def _assoc(primary, companions, description, category):
    return FurnitureAssociation(
        primary_type=primary,
        associated_types=tuple(AssociatedType(*c) for c in companions),
        description=description,
        category=category,
    )


ASSOCIATIONS = (
    _assoc("Desk", [("Chair", 1, "facing", 0.6, "required")],
           "Office desk with chair", "office"),
    _assoc("Adjustable Desk", [("Chair", 1, "facing", 0.6, "required")],
           "Adjustable office desk with chair", "office"),
    _assoc("Standing Desk", [("Chair", 1, "facing", 0.8, "preferred")],
           "Standing desk with optional chair", "office"),
    _assoc("Table", [("Chair", 4, "around", 0.5, "required")],
           "Dining/meeting table with 4 chairs", "dining"),
    _assoc("Simple table", [("Chair", 4, "around", 0.5, "preferred")],
           "Simple table with 4 chairs", "dining"),
    _assoc("Conference Table", [("Chair", 8, "around", 0.6, "required")],
           "Conference table with 8 chairs", "meeting"),
    _assoc("TV", [("Sofa", 1, "facing", 2.5, "preferred"),
                  ("Chair", 2, "facing", 2.0, "optional")],
           "TV with seating arrangement", "living"),
    _assoc("Sofa", [("Simple table", 1, "facing", 0.8, "preferred")],
           "Sofa with coffee table", "living"),
    _assoc("Bed Double", [("Simple table", 2, "adjacent", 0.3, "preferred")],
           "Double bed with nightstands", "bedroom"),
    _assoc("Bed Single", [("Simple table", 1, "adjacent", 0.3, "preferred")],
           "Single bed with nightstand", "bedroom"),
    _assoc("Bookcase", [("Chair", 1, "facing", 1.2, "optional")],
           "Bookcase with reading chair", "office"),
)

BoundsLike = Union[RoomBounds, tuple[Point3D, Point3D]]


class AssociationEngine:
    """Looks up companion furniture and computes where it goes."""

    def __init__(self, associations=ASSOCIATIONS):
        self._associations = list(associations)

    def get_association(self, furniture_type: str) -> Optional[FurnitureAssociation]:
        for association in self._associations:
            if association.primary_type == furniture_type:
                return association
        return None

    def get_associations_by_category(self, category: str) -> list[FurnitureAssociation]:
        return [a for a in self._associations if a.category == category]

    def has_associations(self, furniture_type: str) -> bool:
        return self.get_association(furniture_type) is not None

    def get_primary_furniture_types(self) -> list[str]:
        return [a.primary_type for a in self._associations]

    def get_association_description(self, furniture_type: str) -> str:
        association = self.get_association(furniture_type)
        if association:
            return association.description
        return f"{furniture_type} (no associations)"

    def expand_furniture_request(
        self,
        furniture_type: str,
        quantity: int = 1,
        include_priority: str = "preferred",
    ) -> list[ExpandedItem]:
        """
        Expand a request into the primary plus companions at or above a priority.

        Companion quantities are multiplied by the primary quantity.
        """
        items = [ExpandedItem(furniture_type, quantity, "primary")]
        association = self.get_association(furniture_type)
        if association is None:
            return items

        threshold = PRIORITY_LEVELS[include_priority]
        for companion in association.associated_types:
            if PRIORITY_LEVELS[companion.priority] >= threshold:
                items.append(ExpandedItem(
                    companion.type, companion.quantity * quantity, "secondary"
                ))
        return items

    def calculate_associated_placements(
        self,
        primary_type: str,
        primary_position: Point3D,
        primary_rotation: Point3D,
        room_bounds: Optional[BoundsLike] = None,
    ) -> AssociationPlacement:
        placement = AssociationPlacement(
            primary_position=primary_position,
            primary_rotation=primary_rotation,
        )
        association = self.get_association(primary_type)
        if association is None:
            return placement

        index = 0
        for companion in association.associated_types:
            for position, rotation in self._positions_for(
                companion, primary_position, primary_rotation, room_bounds
            ):
                placement.associated_objects.append(AssociatedObject(
                    type=companion.type,
                    position=position,
                    rotation=rotation,
                    group_id=f"{primary_type.lower()}-group-{index}",
                ))
                index += 1
        return placement

    # ------------------------------------------------------------------
    # Positioning rules
    # ------------------------------------------------------------------
    def _positions_for(
        self,
        companion: AssociatedType,
        position: Point3D,
        rotation: Point3D,
        room_bounds: Optional[BoundsLike],
    ) -> list[tuple[Point3D, Point3D]]:
        if companion.positioning == "facing":
            candidates = self._facing(companion, position, rotation)
        elif companion.positioning == "around":
            candidates = self._around(companion, position, rotation)
        elif companion.positioning == "adjacent":
            candidates = self._adjacent(companion, position, rotation)
        elif companion.positioning == "opposite":
            candidates = self._opposite(companion, position, rotation)
        else:
            candidates = []

        if room_bounds is None:
            return candidates

        if isinstance(room_bounds, RoomBounds):
            min_x, min_z, max_x, max_z = room_bounds.get_bounds()
        else:
            low, high = room_bounds
            min_x, min_z, max_x, max_z = low.x, low.z, high.x, high.z

        return [
            (p, r) for p, r in candidates
            if min_x <= p.x <= max_x and min_z <= p.z <= max_z
        ]

    @staticmethod
    def _facing(companion, position, rotation):
        # One companion in front of the primary, turned to face it.
        front = Point3D(math.sin(rotation.y), 0.0, math.cos(rotation.y))
        return [(
            position.add(front.scale(companion.distance)),
            Point3D(rotation.x, rotation.y + math.pi, rotation.z),
        )]

    @staticmethod
    def _around(companion, position, rotation):
        results = []
        step = 2 * math.pi / companion.quantity
        for i in range(companion.quantity):
            angle = i * step
            results.append((
                Point3D(
                    position.x + math.cos(angle) * companion.distance,
                    position.y,
                    position.z + math.sin(angle) * companion.distance,
                ),
                # Forward is (sin y, cos y); turn it towards the primary.
                Point3D(rotation.x, math.atan2(-math.cos(angle), -math.sin(angle)), rotation.z),
            ))
        return results

    @staticmethod
    def _adjacent(companion, position, rotation):
        right = Point3D(math.cos(rotation.y), 0.0, -math.sin(rotation.y))
        results = []
        for i in range(companion.quantity):
            side = 1 if i % 2 == 0 else -1
            results.append((position.add(right.scale(side * companion.distance)), rotation))
        return results

    @staticmethod
    def _opposite(companion, position, rotation):
        back = Point3D(-math.sin(rotation.y), 0.0, -math.cos(rotation.y))
        return [(position.add(back.scale(companion.distance)), rotation)]
