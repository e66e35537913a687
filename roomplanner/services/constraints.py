"""
Constraint records shared by the placement and fire safety validators.
"""

from dataclasses import dataclass
from typing import Optional

from .geometry import Point3D


@dataclass(frozen=True)
class Measurement:
    actual: float
    required: float
    unit: str = "meters"  # meters, degrees, ratio, doors, persons


@dataclass(frozen=True)
class Regulation:
    standard: str  # ADA, IBC, OSHA, ergonomic, best-practice
    reference: str


@dataclass(frozen=True)
class PlacementConstraint:
    """A single violation, warning or suggestion found by a validator."""
    id: str
    type: str  # clearance, accessibility, safety, ergonomic, building-code, functional
    severity: str  # error, warning, info, suggestion
    description: str
    measurement: Measurement
    affected_objects: tuple[str, ...] = ()
    position: Optional[Point3D] = None
    required_action: str = "none"  # move, remove, resize, rotate, group, none
    suggested_position: Optional[Point3D] = None
    regulation: Optional[Regulation] = None


ADA_PATHWAY = Regulation("ADA", "ADA 2010 Section 403.5.1")
ADA_TURNING_SPACE = Regulation("ADA", "ADA 2010 Section 304.3")
ADA_CLEAR_FLOOR = Regulation("ADA", "ADA 2010 Section 305.3")
IBC_EGRESS_WIDTH = Regulation("IBC", "IBC Section 1005.1")
IBC_EXIT_CAPACITY = Regulation("IBC", "IBC Section 1005.3")
IBC_EXIT_COUNT = Regulation("IBC", "IBC Section 1006.2")
IBC_EXIT_SEPARATION = Regulation("IBC", "IBC Section 1007.1.1")
IBC_TRAVEL_DISTANCE = Regulation("IBC", "IBC Section 1016.1")
FURNITURE_GUIDELINES = Regulation("best-practice", "Furniture clearance guidelines")


def count_severity(constraints, severity: str) -> int:
    return sum(1 for c in constraints if c.severity == severity)
