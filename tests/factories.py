"""
Small builders for scene snapshots used across the test modules.
"""

from roomplanner.services.geometry import PlanPoint, Point3D
from roomplanner.services.scene import Dimensions, MeshSnapshot, RoomConstraint, SceneObject


def rectangle(width, depth):
    """Counter-clockwise rectangle with its origin corner at (0, 0)."""
    return (
        PlanPoint(0.0, 0.0),
        PlanPoint(width, 0.0),
        PlanPoint(width, depth),
        PlanPoint(0.0, depth),
    )


def square(size):
    return rectangle(size, size)


def furniture(object_id, object_type, x, z, rotation=0.0, **kwargs):
    return SceneObject(
        id=object_id,
        type=object_type,
        position=Point3D(x, 0.0, z),
        rotation=Point3D(0.0, rotation, 0.0),
        **kwargs,
    )


def door(door_id, x, z, width=0.9, fire_exit=False):
    return RoomConstraint(
        id=door_id,
        type="door",
        position=Point3D(x, 0.0, z),
        dimensions=Dimensions(width, 2.1, 0.1),
        is_fire_exit=fire_exit,
    )


def window(window_id, x, z, width=1.2):
    return RoomConstraint(
        id=window_id,
        type="window",
        position=Point3D(x, 0.0, z),
        dimensions=Dimensions(width, 1.2, 0.1),
    )


def snapshot(polygon=None, constraints=(), room_id="room-1"):
    return MeshSnapshot(
        id=room_id,
        floor_polygon=tuple(polygon if polygon is not None else square(4.0)),
        constraints=tuple(constraints),
    )


def room_payload(size=4.0, doors=(), room_id="room-1"):
    """JSON body for the ``room`` field of the API endpoints."""
    return {
        "id": room_id,
        "floor_polygon": [[0, 0], [size, 0], [size, size], [0, size]],
        "constraints": [
            {
                "id": door_id,
                "type": "door",
                "position": {"x": x, "y": 0, "z": z},
                "dimensions": {"width": width, "height": 2.1, "depth": 0.1},
            }
            for door_id, x, z, width in doors
        ],
    }


def object_payload(object_id, object_type, x, z):
    return {"id": object_id, "type": object_type, "position": {"x": x, "y": 0, "z": z}}
