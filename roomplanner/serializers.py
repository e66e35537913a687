"""
Conversion between JSON payloads and service types.

Incoming dicts become scene objects, snapshots and requests; outgoing
dataclasses become plain dicts and lists that ``JsonResponse`` can encode.
"""

from dataclasses import fields, is_dataclass
import math

from .services.clearance import FEEDBACK_TYPES, ClearanceAdjustmentRequest, UserContext
from .services.errors import PlannerError
from .services.geometry import ZERO, PlanPoint, Point3D
from .services.scene import Dimensions, MeshSnapshot, RoomConstraint, SceneObject
from .services.workflow import WORKFLOW_TYPES, WorkflowContext, WorkflowRequest


class PayloadError(PlannerError, ValueError):
    """Raised when a request payload is missing fields or malformed."""


CONSTRAINT_TYPES = ("wall", "door", "window")


def _require(data, key):
    if not isinstance(data, dict):
        raise PayloadError(f"Expected an object containing '{key}'")
    if key not in data:
        raise PayloadError(f"Missing field: {key}")
    return data[key]


def _float(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise PayloadError(f"Field {name} must be a number, got {value!r}") from None


def _optional_float(value, name: str):
    return None if value is None else _float(value, name)


def _optional_int(value, name: str):
    if value is None:
        return None
    if isinstance(value, bool):
        raise PayloadError(f"Field {name} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise PayloadError(f"Field {name} must be an integer, got {value!r}") from None
    if number < 0:
        raise PayloadError(f"Field {name} must not be negative, got {value!r}")
    return number


def point_from(value, default=None) -> Point3D:
    """Accepts ``{"x", "y", "z"}`` (missing axes are 0) or ``[x, y, z]``."""
    if value is None:
        if default is None:
            raise PayloadError("Missing point")
        return default
    if isinstance(value, dict):
        return Point3D(
            _float(value.get("x", 0.0), "x"),
            _float(value.get("y", 0.0), "y"),
            _float(value.get("z", 0.0), "z"),
        )
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return Point3D(*(_float(v, "point") for v in value))
    raise PayloadError(f"Invalid point: {value!r}")


def polygon_from(value) -> tuple[PlanPoint, ...]:
    """Accepts ``[[x, z], ...]`` or ``[{"x", "z"}, ...]``."""
    if not isinstance(value, (list, tuple)):
        raise PayloadError("floor_polygon must be a list of points")
    points = []
    for item in value:
        if isinstance(item, dict):
            points.append(PlanPoint(_float(item.get("x"), "x"), _float(item.get("z"), "z")))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            points.append(PlanPoint(_float(item[0], "x"), _float(item[1], "z")))
        else:
            raise PayloadError(f"Invalid polygon vertex: {item!r}")
    return tuple(points)


def dimensions_from(value, default=None):
    if value is None:
        return default
    return Dimensions(
        _float(_require(value, "width"), "width"),
        _float(_require(value, "height"), "height"),
        _float(_require(value, "depth"), "depth"),
    )


def scene_object_from(data) -> SceneObject:
    return SceneObject(
        id=str(_require(data, "id")),
        type=str(_require(data, "type")),
        position=point_from(_require(data, "position")),
        rotation=point_from(data.get("rotation"), ZERO),
        scale=point_from(data.get("scale"), Point3D(1.0, 1.0, 1.0)),
        actual_dimensions=dimensions_from(data.get("actual_dimensions")),
    )


def scene_objects_from(value) -> list[SceneObject]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadError("scene_objects must be a list")
    return [scene_object_from(item) for item in value]


def constraint_from(data) -> RoomConstraint:
    constraint_type = _require(data, "type")
    if constraint_type not in CONSTRAINT_TYPES:
        raise PayloadError(f"Unknown constraint type: {constraint_type}")
    return RoomConstraint(
        id=str(_require(data, "id")),
        type=constraint_type,
        position=point_from(_require(data, "position")),
        dimensions=dimensions_from(data.get("dimensions"), Dimensions(0.9, 2.1, 0.1)),
        rotation=_float(data.get("rotation", 0.0), "rotation"),
        is_fire_exit=bool(data.get("is_fire_exit", False)),
    )


def snapshot_from(data) -> MeshSnapshot:
    return MeshSnapshot(
        id=str(_require(data, "id")),
        floor_polygon=polygon_from(_require(data, "floor_polygon")),
        constraints=tuple(constraint_from(c) for c in data.get("constraints", [])),
    )


def workflow_request_from(data) -> WorkflowRequest:
    workflow_type = _require(data, "type")
    if workflow_type not in WORKFLOW_TYPES:
        raise PayloadError(f"Unknown workflow type: {workflow_type}")
    context = data.get("context") or {}
    return WorkflowRequest(
        type=workflow_type,
        room_id=str(_require(data, "room_id")),
        user_query=data.get("user_query"),
        target_furniture=data.get("target_furniture"),
        strategy=data.get("strategy"),
        goals=data.get("goals"),
        max_objects=_optional_int(data.get("max_objects"), "max_objects"),
        accessibility=bool(data.get("accessibility", True)),
        fire_safety=bool(data.get("fire_safety", True)),
        custom_clearance=_optional_float(data.get("custom_clearance"), "custom_clearance"),
        context=WorkflowContext(
            activity=context.get("activity"),
            user_count=_optional_int(context.get("user_count"), "user_count"),
            time_of_day=context.get("time_of_day"),
            previous_feedback=list(context.get("previous_feedback", [])),
        ),
    )


def feedback_request_from(data) -> ClearanceAdjustmentRequest:
    feedback = _require(data, "feedback")
    if feedback not in FEEDBACK_TYPES:
        raise PayloadError(f"Unknown feedback type: {feedback}")
    return ClearanceAdjustmentRequest(
        object_id=str(_require(data, "object_id")),
        feedback=feedback,
        location=point_from(data.get("location"), ZERO),
        affected_objects=tuple(data.get("affected_objects", [])),
        user_context=UserContext(
            activity=data.get("activity", ""),
            severity=data.get("severity", "moderate"),
        ),
    )


def to_json(value):
    """Recursively convert service results to JSON-compatible values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, PlanPoint):
        return {"x": value.x, "z": value.z}
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
