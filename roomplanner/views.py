import io
import json
import logging

from django.apps import apps
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .models import RoomPlan, WorkflowRun
from .serializers import (
    feedback_request_from,
    scene_objects_from,
    snapshot_from,
    to_json,
    workflow_request_from,
)
from .services.dxf_loader import load_room_snapshot
from .services.errors import PlannerError
from .services.preview import render_layout_preview
from .services.room_analyzer import analyze_room_geometry
from .services.scene import StaticMeshProvider


logger = logging.getLogger(__name__)


def planner_services():
    return apps.get_app_config("roomplanner").services


@method_decorator(csrf_exempt, name="dispatch")
class PlannerAPIView(View):
    """
    Base class for the JSON endpoints.

    Subclasses implement ``handle(payload)``. Malformed JSON and planner
    errors (bad geometry, unknown ids, invalid payloads) become HTTP 400.
    """

    def post(self, request: HttpRequest) -> HttpResponse:
        try:
            payload = json.loads(request.body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JsonResponse({"error": "Request body must be valid JSON"}, status=400)
        if not isinstance(payload, dict):
            return JsonResponse({"error": "Request body must be a JSON object"}, status=400)

        try:
            return self.handle(payload)
        except (PlannerError, ValueError) as exc:
            logger.warning("%s rejected request: %s", type(self).__name__, exc)
            return JsonResponse({"error": str(exc)}, status=400)

    def handle(self, payload: dict) -> HttpResponse:
        raise NotImplementedError


class OptimizeAPI(PlannerAPIView):
    """Maximum placements of one furniture type in a room."""

    def handle(self, payload):
        snapshot = snapshot_from(payload.get("room"))
        result = planner_services().optimizer.optimize_space(
            analyze_room_geometry(snapshot.floor_polygon),
            str(payload.get("object_type", "Chair")),
            strategy=payload.get("strategy", "maximize"),
            config_overrides=payload.get("config"),
            existing_objects=scene_objects_from(payload.get("scene_objects")),
        )
        return JsonResponse(to_json(result))


class ValidateAPI(PlannerAPIView):
    def handle(self, payload):
        snapshot = snapshot_from(payload.get("room"))
        result = planner_services().validator.validate_placement(
            snapshot,
            scene_objects_from(payload.get("scene_objects")),
            snapshot.id,
            focus_objects=payload.get("focus_objects"),
        )
        return JsonResponse(to_json(result))


class FireSafetyAPI(PlannerAPIView):
    def handle(self, payload):
        snapshot = snapshot_from(payload.get("room"))
        result = planner_services().fire_safety.validate_fire_safety(
            snapshot,
            scene_objects_from(payload.get("scene_objects")),
            snapshot.id,
        )
        return JsonResponse(to_json(result))


class ReorganizeAPI(PlannerAPIView):
    def handle(self, payload):
        snapshot = snapshot_from(payload.get("room"))
        result = planner_services().reorganizer.analyze_and_suggest_reorganization(
            snapshot,
            scene_objects_from(payload.get("scene_objects")),
            snapshot.id,
            goals=payload.get("goals"),
        )
        return JsonResponse(to_json(result))


class FeedbackAPI(PlannerAPIView):
    """
    POST records clearance feedback for an object; GET returns statistics.
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        return JsonResponse(planner_services().clearance.get_feedback_statistics())

    def handle(self, payload):
        result = planner_services().clearance.process_clearance_feedback(
            feedback_request_from(payload),
            scene_objects_from(payload.get("scene_objects")),
        )
        return JsonResponse(to_json(result))


class PreviewAPI(PlannerAPIView):
    """Optimizes a room and returns the layout as a PNG image."""

    def handle(self, payload):
        snapshot = snapshot_from(payload.get("room"))
        scene_objects = scene_objects_from(payload.get("scene_objects"))
        room = analyze_room_geometry(snapshot.floor_polygon)
        object_type = str(payload.get("object_type", "Chair"))
        result = planner_services().optimizer.optimize_space(
            room,
            object_type,
            strategy=payload.get("strategy", "maximize"),
            existing_objects=scene_objects,
        )

        buffer = io.BytesIO()
        render_layout_preview(
            room,
            result.layouts,
            scene_objects,
            buffer,
            constraints=snapshot.constraints,
            title=f"{result.max_objects} x {object_type}",
        )
        return HttpResponse(buffer.getvalue(), content_type="image/png")


class WorkflowAPI(PlannerAPIView):
    """
    Runs a named workflow and records it as a ``WorkflowRun``.

    Payload: ``request`` (workflow request), ``room`` (snapshot, optional
    when ``plan_id`` names an uploaded plan) and ``scene_objects``.
    """

    def handle(self, payload):
        workflow_request = workflow_request_from(payload.get("request"))
        scene_objects = scene_objects_from(payload.get("scene_objects"))

        provider = StaticMeshProvider()
        plan = None
        if payload.get("plan_id") is not None:
            plan = RoomPlan.objects.filter(pk=payload["plan_id"]).first()
            if plan is None:
                return JsonResponse({"error": "plan not found"}, status=404)
            provider.add(load_room_snapshot(
                plan.dxf_file.path, workflow_request.room_id, plan.room_index
            ))
        elif payload.get("room") is not None:
            provider.add(snapshot_from(payload["room"]))

        run = WorkflowRun.objects.create(
            plan=plan,
            workflow_type=workflow_request.type,
            room_id=workflow_request.room_id,
        )
        log_lines = []

        def on_progress(progress):
            log_lines.append(f"[{progress.progress:5.1f}%] {progress.message}")

        result = planner_services().workflow.execute_workflow(
            workflow_request, scene_objects, provider, on_progress
        )

        log_lines.append(result.message)
        run.status = WorkflowRun.STATUS_DONE if result.success else WorkflowRun.STATUS_FAILED
        run.log = "\n".join(log_lines)
        run.result = to_json(result)
        run.save()

        return JsonResponse({"run_id": run.pk, "status": run.status, "result": run.result})


@method_decorator(csrf_exempt, name="dispatch")
class PlanUploadAPI(View):
    """
    Accepts a DXF upload and returns the imported room with its analysis.
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        uploaded_file = request.FILES.get("file")
        if not uploaded_file:
            return JsonResponse({"error": "file is required"}, status=400)

        name = request.POST.get("name") or uploaded_file.name
        try:
            room_index = int(request.POST.get("room_index", 0))
        except ValueError:
            return JsonResponse({"error": "room_index must be an integer"}, status=400)

        plan = RoomPlan.objects.create(
            name=name, dxf_file=uploaded_file, room_index=room_index
        )

        try:
            snapshot = load_room_snapshot(plan.dxf_file.path, plan.room_id, room_index)
            analysis = planner_services().analyzer.analyze_room(snapshot, [], plan.room_id)
        except PlannerError as exc:
            logger.warning("Plan %s could not be imported: %s", plan.pk, exc)
            return JsonResponse({"plan_id": plan.pk, "error": str(exc)}, status=400)

        return JsonResponse({
            "plan_id": plan.pk,
            "room": to_json(snapshot),
            "analysis": to_json(analysis),
        })
