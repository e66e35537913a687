import threading

import pytest

from roomplanner.services.scene import StaticMeshProvider
from roomplanner.services.workflow import WorkflowContext, WorkflowOrchestrator, WorkflowRequest

from .factories import door, furniture, snapshot, square


@pytest.fixture
def orchestrator():
    return WorkflowOrchestrator()


@pytest.fixture
def provider():
    provider = StaticMeshProvider()
    provider.add(snapshot(square(5.0), [door("door-1", 2.5, 0.0, width=1.2)], room_id="office"))
    provider.add(snapshot(square(4.0), room_id="closet"))
    return provider


def test_missing_room_fails_gracefully(orchestrator, provider):
    request = WorkflowRequest(type="space_optimization", room_id="attic")

    result = orchestrator.execute_workflow(request, [], provider)

    assert not result.success
    assert result.message == "Workflow failed: No room found for space analysis"
    assert orchestrator.get_current_workflow() is None
    assert orchestrator.get_workflow_history() == [result]


def test_unknown_workflow_type(orchestrator, provider):
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="interior_design", room_id="office"), [], provider
    )

    assert not result.success
    assert result.message == "Workflow failed: Unknown workflow type: interior_design"


def test_space_optimization(orchestrator, provider):
    progress = []
    request = WorkflowRequest(type="space_optimization", room_id="office", target_furniture="Chair")

    result = orchestrator.execute_workflow(request, [], provider, progress.append)

    assert result.success, result.message
    assert result.type == "space_optimization"
    assert result.message.startswith("Successfully optimized space: ")
    assert result.message.endswith("% efficiency")

    placed = result.data["placed_objects"]
    assert placed
    assert placed[0].id == "optimized-chair-1"
    assert placed[0].type == "Chair"
    assert len(placed) == result.data["space_analysis"].max_objects
    assert result.data["effective_clearance"] == pytest.approx(0.6)

    metrics = result.data["metrics"]
    assert 0.0 <= metrics.user_satisfaction <= 1.0
    assert metrics.user_satisfaction == pytest.approx(
        metrics.efficiency * 0.4 + metrics.safety * 0.3 + metrics.accessibility * 0.3
    )

    values = [p.progress for p in progress]
    assert values == sorted(values)
    assert values[-1] == 100.0
    assert result.estimated_time >= 0.0


def test_space_optimization_respects_max_objects(orchestrator, provider):
    request = WorkflowRequest(
        type="space_optimization", room_id="office", target_furniture="Chair", max_objects=2
    )

    result = orchestrator.execute_workflow(request, [], provider)

    assert len(result.data["placed_objects"]) == 2


def test_space_optimization_context_scales_clearance(orchestrator, provider):
    request = WorkflowRequest(
        type="space_optimization",
        room_id="office",
        target_furniture="Desk",
        context=WorkflowContext(user_count=2),
    )

    result = orchestrator.execute_workflow(request, [], provider)

    assert result.data["effective_clearance"] == pytest.approx(1.2 * 1.2)
    assert any("Office desk with chair" in r for r in result.data["recommendations"])


def test_layout_generation_defaults(orchestrator, provider):
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="layout_generation", room_id="office"), [], provider
    )

    assert result.success, result.message
    assert result.message == "Generated 3 layout options"
    options = result.data["layout_generation"]
    assert [o.object_type for o in options] == ["Chair", "Desk", "Table"]
    assert all(o.strategy == "maximize" for o in options)


def test_layout_generation_association_score(orchestrator, provider):
    scene = [furniture("chair-1", "Chair", 1.0, 1.0)]
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="layout_generation", room_id="office", target_furniture="Desk"),
        scene,
        provider,
    )

    option = result.data["layout_generation"][0]
    assert option.object_type == "Desk"
    assert option.association_score == pytest.approx(0.1)


def test_room_analysis_without_doors(orchestrator, provider):
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="room_analysis", room_id="closet"), [], provider
    )

    assert result.success
    recommendations = result.data["recommendations"]
    assert "No doors found; add egress doors before placing furniture" in recommendations
    optimal = len(result.data["room_analysis"].zones_of_type("optimal"))
    assert f"{optimal} optimal placement zones available" in recommendations


def test_reorganization(orchestrator, provider):
    scene = [furniture("desk-1", "Desk", 2.5, 1.0)]
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="reorganization", room_id="office"), scene, provider
    )

    assert result.success, result.message
    assert result.data["reorganization"].reorganization_plans
    assert 0 < len(result.data["recommendations"]) <= 10


def test_ai_assistance_requires_a_query(orchestrator, provider):
    result = orchestrator.execute_workflow(
        WorkflowRequest(type="ai_assistance", room_id="office"), [], provider
    )

    assert not result.success
    assert result.message == "Workflow failed: User query is required for AI assistance"


def test_ai_assistance(orchestrator, provider):
    scene = [furniture("desk-1", "Desk", 2.5, 3.0)]
    request = WorkflowRequest(
        type="ai_assistance",
        room_id="office",
        user_query="Where should the desk go?",
        context=WorkflowContext(previous_feedback=["too_crowded"]),
    )

    result = orchestrator.execute_workflow(request, scene, provider)

    assert result.success, result.message
    assert result.data["ai_response"].startswith("Room office has 1 objects (Desk)")
    assert result.data["context"]["previous_feedback"] == ["too_crowded"]
    assert 1 <= len(result.data["recommendations"]) <= 5


def test_history(orchestrator, provider):
    for room_id in ("office", "attic"):
        orchestrator.execute_workflow(
            WorkflowRequest(type="room_analysis", room_id=room_id), [], provider
        )

    history = orchestrator.get_workflow_history()
    assert [r.success for r in history] == [True, False]

    history.clear()
    assert len(orchestrator.get_workflow_history()) == 2

    orchestrator.clear_history()
    assert orchestrator.get_workflow_history() == []


class GatedMeshProvider:
    """Holds lookups of one room until ``release`` is set."""

    def __init__(self, provider, held_room):
        self.provider = provider
        self.held_room = held_room
        self.entered = threading.Event()
        self.release = threading.Event()

    def get_mesh_snapshot(self, mesh_id):
        if mesh_id == self.held_room:
            self.entered.set()
            self.release.wait(timeout=10)
        return self.provider.get_mesh_snapshot(mesh_id)


def test_concurrent_runs_keep_their_own_progress(orchestrator, provider):
    gated = GatedMeshProvider(provider, "office")
    slow_events, fast_events, results = [], [], {}

    def run_slow():
        results["slow"] = orchestrator.execute_workflow(
            WorkflowRequest(type="room_analysis", room_id="office"), [], gated, slow_events.append
        )

    thread = threading.Thread(target=run_slow)
    thread.start()
    try:
        assert gated.entered.wait(timeout=10)
        fast = orchestrator.execute_workflow(
            WorkflowRequest(type="room_analysis", room_id="closet"), [], gated, fast_events.append
        )
        assert orchestrator.get_current_workflow().room_id == "office"
    finally:
        gated.release.set()
        thread.join(timeout=10)

    assert fast.success
    assert results["slow"].success
    assert [e.progress for e in fast_events] == [0, 25, 50, 75, 100]
    assert [e.progress for e in slow_events] == [0, 25, 50, 75, 100]
    assert slow_events[-1].step == "Room analysis complete"
    assert orchestrator.get_current_workflow() is None
    assert orchestrator.get_running_workflows() == []
    assert [r.success for r in orchestrator.get_workflow_history()] == [True, True]


def test_history_is_bounded(settings, provider):
    settings.ROOMPLANNER = {"WORKFLOW_HISTORY_LIMIT": 2}
    orchestrator = WorkflowOrchestrator()

    for room_id in ("office", "attic", "closet"):
        orchestrator.execute_workflow(
            WorkflowRequest(type="room_analysis", room_id=room_id), [], provider
        )

    history = orchestrator.get_workflow_history()
    assert len(history) == 2
    assert [r.success for r in history] == [False, True]
