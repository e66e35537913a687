import io
import json

import ezdxf
import pytest
from ezdxf import units
from django.core.files.uploadedfile import SimpleUploadedFile

from roomplanner.models import RoomPlan, WorkflowRun

from .factories import object_payload, room_payload


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def dxf_bytes():
    doc = ezdxf.new("R2010")
    doc.units = units.M
    doc.blocks.new(name="DOOR")
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (5, 0), (5, 4), (0, 4)], close=True, dxfattribs={"layer": "ROOM"})
    msp.add_blockref("DOOR", (2.5, 0), dxfattribs={"layer": "DOORS"})
    stream = io.StringIO()
    doc.write(stream)
    return stream.getvalue().encode("utf-8")


@pytest.fixture
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path)
    return tmp_path


def test_optimize(client, planner_services):
    response = post_json(client, "/api/optimize/", {
        "room": room_payload(5.0),
        "object_type": "Chair",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["max_objects"] >= 4
    assert data["layouts"][0]["id"] == "Chair-1"
    assert set(data["layouts"][0]["position"]) == {"x", "y", "z"}


def test_invalid_json_is_rejected(client):
    response = client.post("/api/optimize/", data="{not json", content_type="application/json")

    assert response.status_code == 400
    assert response.json() == {"error": "Request body must be valid JSON"}


def test_body_must_be_an_object(client):
    response = post_json(client, "/api/validate/", [1, 2, 3])

    assert response.status_code == 400


def test_degenerate_room_is_rejected(client):
    room = {"id": "room-1", "floor_polygon": [[0, 0], [1, 0]]}
    response = post_json(client, "/api/optimize/", {"room": room})

    assert response.status_code == 400
    assert "at least 3 points" in response.json()["error"]


def test_missing_room_is_rejected(client):
    response = post_json(client, "/api/validate/", {})

    assert response.status_code == 400


def test_validate(client, planner_services):
    response = post_json(client, "/api/validate/", {
        "room": room_payload(4.0, doors=[("door-1", 2.0, 0.0, 1.2)]),
        "scene_objects": [object_payload("desk-1", "Desk", 2.0, 1.0)],
    })

    assert response.status_code == 200
    data = response.json()
    assert not data["is_valid"]
    assert 0 <= data["score"] <= 100
    assert "pathway-width-path-door-1-center" in {v["id"] for v in data["violations"]}


def test_fire_safety_without_doors(client, planner_services):
    response = post_json(client, "/api/fire-safety/", {"room": room_payload(4.0)})

    assert response.status_code == 200
    data = response.json()
    assert data["compliant"] is False
    assert data["violations"][0]["id"] == "no-egress-doors"


def test_reorganize(client, planner_services):
    response = post_json(client, "/api/reorganize/", {
        "room": room_payload(4.0, doors=[("door-1", 2.0, 0.0, 1.2)]),
        "scene_objects": [object_payload("desk-1", "Desk", 2.0, 1.0)],
        "goals": ["accessibility"],
    })

    assert response.status_code == 200
    assert response.json()["reorganization_plans"]


def test_reorganize_rejects_unknown_goals(client, planner_services):
    response = post_json(client, "/api/reorganize/", {
        "room": room_payload(4.0),
        "scene_objects": [],
        "goals": ["vibes"],
    })

    assert response.status_code == 400


def test_feedback_round_trip(client, planner_services):
    response = post_json(client, "/api/feedback/", {
        "object_id": "desk-1",
        "feedback": "too_crowded",
        "severity": "severe",
        "scene_objects": [object_payload("desk-1", "Desk", 2.0, 2.0)],
    })

    assert response.status_code == 200
    assert response.json()["new_clearance"] > response.json()["previous_clearance"]
    assert planner_services.clearance.get_clearance_settings("Desk").adaptive_multiplier == 1.4

    stats = client.get("/api/feedback/").json()
    assert stats["total_feedback"] == 1
    assert stats["most_adjusted_objects"] == ["desk-1"]


def test_feedback_for_unknown_object(client, planner_services):
    response = post_json(client, "/api/feedback/", {
        "object_id": "ghost",
        "feedback": "too_crowded",
        "scene_objects": [],
    })

    assert response.status_code == 400
    assert response.json() == {"error": "Object ghost not found"}


def test_preview_returns_png(client, planner_services):
    response = post_json(client, "/api/preview/", {
        "room": room_payload(4.0, doors=[("door-1", 2.0, 0.0, 1.2)]),
        "object_type": "Chair",
    })

    assert response.status_code == 200
    assert response["Content-Type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.django_db
def test_workflow_run_is_recorded(client, planner_services):
    response = post_json(client, "/api/workflow/", {
        "request": {"type": "room_analysis", "room_id": "room-1"},
        "room": room_payload(4.0, doors=[("door-1", 2.0, 0.0, 1.2)]),
    })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == WorkflowRun.STATUS_DONE
    assert data["result"]["success"] is True

    run = WorkflowRun.objects.get(pk=data["run_id"])
    assert run.workflow_type == "room_analysis"
    assert run.room_id == "room-1"
    assert "Room analysis complete" in run.log
    assert run.result["type"] == "room_analysis"


@pytest.mark.django_db
def test_failed_workflow_is_recorded(client, planner_services):
    response = post_json(client, "/api/workflow/", {
        "request": {"type": "space_optimization", "room_id": "room-1"},
    })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == WorkflowRun.STATUS_FAILED
    assert data["result"]["message"] == "Workflow failed: No room found for space analysis"


@pytest.mark.django_db
def test_workflow_with_non_numeric_limit_is_rejected(client, planner_services):
    response = post_json(client, "/api/workflow/", {
        "request": {"type": "space_optimization", "room_id": "room-1", "max_objects": "lots"},
        "room": room_payload(4.0),
    })

    assert response.status_code == 400
    assert "max_objects" in response.json()["error"]
    assert not WorkflowRun.objects.exists()


@pytest.mark.django_db
def test_workflow_with_unknown_plan(client, planner_services):
    response = post_json(client, "/api/workflow/", {
        "request": {"type": "room_analysis", "room_id": "plan-99"},
        "plan_id": 99,
    })

    assert response.status_code == 404
    assert not WorkflowRun.objects.exists()


@pytest.mark.django_db
def test_plan_upload_and_workflow(client, planner_services, media_root):
    upload = SimpleUploadedFile("office.dxf", dxf_bytes(), content_type="application/dxf")
    response = client.post("/api/plans/", {"file": upload, "name": "Office"})

    assert response.status_code == 200
    data = response.json()
    plan = RoomPlan.objects.get(pk=data["plan_id"])
    assert plan.name == "Office"
    assert data["room"]["id"] == plan.room_id
    assert len(data["room"]["floor_polygon"]) == 4
    assert data["analysis"]["room_geometry"]["area"] == pytest.approx(20.0)

    response = post_json(client, "/api/workflow/", {
        "request": {"type": "room_analysis", "room_id": plan.room_id},
        "plan_id": plan.pk,
    })

    assert response.json()["status"] == WorkflowRun.STATUS_DONE
    assert plan.workflow_runs.count() == 1


@pytest.mark.django_db
def test_plan_upload_requires_a_file(client):
    response = client.post("/api/plans/", {"name": "Empty"})

    assert response.status_code == 400
    assert response.json() == {"error": "file is required"}


@pytest.mark.django_db
def test_plan_upload_rejects_bad_drawings(client, planner_services, media_root):
    upload = SimpleUploadedFile("broken.dxf", b"not a drawing")
    response = client.post("/api/plans/", {"file": upload})

    assert response.status_code == 400
    assert "plan_id" in response.json()
