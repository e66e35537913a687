"""
Exception types raised by the planning services.

Only precondition failures are exceptions. Constraint violations, unknown
object types and empty optimization results are returned as data.
"""


class PlannerError(Exception):
    """Base class for all room planner errors."""


class InvalidGeometryError(PlannerError, ValueError):
    """Raised when a floor polygon is degenerate or missing."""


class RoomNotFoundError(PlannerError, LookupError):
    """Raised when no mesh snapshot can be resolved for a room id."""

    def __init__(self, room_id: str):
        super().__init__("No room found for space analysis")
        self.room_id = room_id


class ObjectNotFoundError(PlannerError, LookupError):
    """Raised when a scene object id is not present in the scene."""

    def __init__(self, object_id: str):
        super().__init__(f"Object {object_id} not found")
        self.object_id = object_id


class PlanImportError(PlannerError):
    """Raised when a DXF drawing does not contain a usable room."""
