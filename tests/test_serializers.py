import math

import pytest

from roomplanner.serializers import (
    PayloadError,
    feedback_request_from,
    point_from,
    polygon_from,
    scene_object_from,
    snapshot_from,
    to_json,
    workflow_request_from,
)
from roomplanner.services.geometry import PlanPoint, Point3D
from roomplanner.services.scene import Dimensions

from .factories import room_payload


def test_point_from_accepts_dicts_and_lists():
    assert point_from({"x": 1, "z": 2}) == Point3D(1.0, 0.0, 2.0)
    assert point_from([1, 2, 3]) == Point3D(1.0, 2.0, 3.0)
    assert point_from(None, Point3D(9.0)) == Point3D(9.0)


@pytest.mark.parametrize("value", [None, [1, 2], {"x": "left"}, "origin"])
def test_point_from_rejects_garbage(value):
    with pytest.raises(PayloadError):
        point_from(value)


def test_polygon_from():
    assert polygon_from([[0, 0], {"x": 1, "z": 0}, [1, 1]]) == (
        PlanPoint(0.0, 0.0),
        PlanPoint(1.0, 0.0),
        PlanPoint(1.0, 1.0),
    )
    with pytest.raises(PayloadError):
        polygon_from([[0, 0, 0]])
    with pytest.raises(PayloadError):
        polygon_from("square")


def test_scene_object_defaults():
    obj = scene_object_from({"id": "desk-1", "type": "Desk", "position": [1, 0, 2]})

    assert obj.rotation == Point3D(0.0, 0.0, 0.0)
    assert obj.scale == Point3D(1.0, 1.0, 1.0)
    assert obj.actual_dimensions is None


def test_scene_object_with_measured_size():
    obj = scene_object_from({
        "id": "desk-1",
        "type": "Desk",
        "position": [1, 0, 2],
        "actual_dimensions": {"width": 1.4, "height": 0.7, "depth": 0.7},
    })

    assert obj.actual_dimensions == Dimensions(1.4, 0.7, 0.7)


def test_scene_object_requires_an_id():
    with pytest.raises(PayloadError, match="Missing field: id"):
        scene_object_from({"type": "Desk", "position": [0, 0, 0]})


def test_snapshot_from():
    snapshot = snapshot_from(room_payload(doors=[("door-1", 2, 0, 1.2)]))

    assert snapshot.id == "room-1"
    assert len(snapshot.floor_polygon) == 4
    assert snapshot.constraints[0].dimensions.width == 1.2


def test_unknown_constraint_type():
    payload = room_payload()
    payload["constraints"] = [{"id": "c", "type": "skylight", "position": [0, 0, 0]}]

    with pytest.raises(PayloadError):
        snapshot_from(payload)


def test_workflow_request_from():
    request = workflow_request_from({
        "type": "space_optimization",
        "room_id": "room-1",
        "target_furniture": "Desk",
        "context": {"user_count": 3, "previous_feedback": ["too_crowded"]},
    })

    assert request.target_furniture == "Desk"
    assert request.fire_safety
    assert request.context.user_count == 3
    assert request.context.previous_feedback == ["too_crowded"]

    with pytest.raises(PayloadError):
        workflow_request_from({"type": "dance", "room_id": "room-1"})


def test_workflow_request_coerces_numbers():
    request = workflow_request_from({
        "type": "space_optimization",
        "room_id": "room-1",
        "max_objects": "4",
        "custom_clearance": "0.75",
        "context": {"user_count": "2"},
    })

    assert request.max_objects == 4
    assert request.custom_clearance == 0.75
    assert request.context.user_count == 2


@pytest.mark.parametrize("field, value", [
    ("max_objects", "lots"),
    ("max_objects", -1),
    ("max_objects", True),
    ("custom_clearance", "wide"),
])
def test_workflow_request_rejects_bad_numbers(field, value):
    with pytest.raises(PayloadError):
        workflow_request_from({"type": "space_optimization", "room_id": "room-1", field: value})


def test_workflow_request_rejects_bad_user_count():
    with pytest.raises(PayloadError):
        workflow_request_from({
            "type": "space_optimization",
            "room_id": "room-1",
            "context": {"user_count": "many"},
        })


def test_feedback_request_from():
    request = feedback_request_from({
        "object_id": "desk-1",
        "feedback": "too_crowded",
        "severity": "severe",
    })

    assert request.severity == "severe"
    assert request.location == Point3D(0.0, 0.0, 0.0)

    with pytest.raises(PayloadError):
        feedback_request_from({"object_id": "desk-1", "feedback": "meh"})


def test_to_json():
    data = to_json({
        "point": Point3D(1.0, 2.0, 3.0),
        "vertex": PlanPoint(1.0, 2.0),
        "ids": ("a", "b"),
        "distance": math.inf,
    })

    assert data == {
        "point": {"x": 1.0, "y": 2.0, "z": 3.0},
        "vertex": {"x": 1.0, "z": 2.0},
        "ids": ["a", "b"],
        "distance": None,
    }
