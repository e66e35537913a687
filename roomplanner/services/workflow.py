"""
Named end-to-end planning workflows.

Each workflow resolves the room through a ``MeshProvider``, runs the
relevant services in sequence and reports progress through an optional
callback. Failures never escape ``execute_workflow``; they come back as a
``WorkflowResult`` with ``success=False``.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import logging
import threading
import time

from ..conf import get_setting
from .associations import AssociationEngine
from .clearance import ClearancePolicy
from .errors import RoomNotFoundError
from .fire_safety import FireSafetyValidationResult, FireSafetyValidator
from .geometry import Point3D
from .placement_validator import PlacementValidator
from .reorganization import DEFAULT_GOALS, ReorganizationAdvisor
from .room_analyzer import RoomAnalysisResult, RoomAnalyzer
from .scene import MeshProvider, SceneObject, furniture_only
from .space_optimizer import OptimizationResult, PlacementLayout, SpaceOptimizer


logger = logging.getLogger(__name__)

WORKFLOW_TYPES = (
    "space_optimization",
    "layout_generation",
    "room_analysis",
    "reorganization",
    "ai_assistance",
)

DEFAULT_LAYOUT_TYPES = ("Chair", "Desk", "Table")


@dataclass
class WorkflowContext:
    activity: Optional[str] = None
    user_count: Optional[int] = None
    time_of_day: Optional[str] = None  # morning, afternoon, evening
    previous_feedback: list[str] = field(default_factory=list)


@dataclass
class WorkflowRequest:
    type: str
    room_id: str
    user_query: Optional[str] = None
    target_furniture: Optional[str] = None
    strategy: Optional[str] = None
    goals: Optional[list[str]] = None
    max_objects: Optional[int] = None
    accessibility: bool = True
    fire_safety: bool = True
    custom_clearance: Optional[float] = None
    context: WorkflowContext = field(default_factory=WorkflowContext)


@dataclass(frozen=True)
class WorkflowProgress:
    step: str
    progress: float  # 0-100
    message: str
    time_elapsed: float  # seconds
    estimated_remaining: float  # seconds


@dataclass(frozen=True)
class WorkflowMetrics:
    efficiency: float
    safety: float
    accessibility: float
    user_satisfaction: float


@dataclass
class LayoutOption:
    object_type: str
    strategy: str
    optimization: OptimizationResult
    clearance_score: float
    association_score: float


@dataclass
class WorkflowResult:
    success: bool
    type: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    next_steps: list[str] = field(default_factory=list)
    estimated_time: float = 0.0  # minutes


ProgressCallback = Callable[[WorkflowProgress], None]


class ProgressReporter:
    """Progress clock and callback for a single workflow run."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.started_at = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def update(self, step: str, progress: float) -> None:
        if self.callback is None:
            return
        progress = min(progress, 100.0)
        elapsed = self.elapsed()
        remaining = elapsed * (100 - progress) / progress if progress > 0 else 0.0
        self.callback(WorkflowProgress(
            step=step,
            progress=progress,
            message=f"{step}...",
            time_elapsed=elapsed,
            estimated_remaining=remaining,
        ))


class WorkflowOrchestrator:
    """Runs planning workflows on top of the shared service instances."""

    def __init__(
        self,
        analyzer: Optional[RoomAnalyzer] = None,
        optimizer: Optional[SpaceOptimizer] = None,
        validator: Optional[PlacementValidator] = None,
        fire_safety: Optional[FireSafetyValidator] = None,
        reorganizer: Optional[ReorganizationAdvisor] = None,
        clearance: Optional[ClearancePolicy] = None,
        associations: Optional[AssociationEngine] = None,
    ):
        self.analyzer = analyzer or RoomAnalyzer()
        self.optimizer = optimizer or SpaceOptimizer()
        self.fire_safety = fire_safety or FireSafetyValidator(self.analyzer)
        self.validator = validator or PlacementValidator(self.analyzer, self.fire_safety)
        self.associations = associations or AssociationEngine()
        self.reorganizer = reorganizer or ReorganizationAdvisor(
            self.analyzer, self.validator, self.associations
        )
        self.clearance = clearance or ClearancePolicy()

        # One orchestrator serves every request thread; per-run state lives
        # in a ProgressReporter and the shared fields below are lock guarded.
        self._lock = threading.Lock()
        self._running: list[WorkflowRequest] = []
        self._history: deque[WorkflowResult] = deque(
            maxlen=get_setting("WORKFLOW_HISTORY_LIMIT")
        )

        self._handlers = {
            "space_optimization": self._space_optimization,
            "layout_generation": self._layout_generation,
            "room_analysis": self._room_analysis,
            "reorganization": self._reorganization,
            "ai_assistance": self._ai_assistance,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def execute_workflow(
        self,
        request: WorkflowRequest,
        scene_objects: list[SceneObject],
        mesh_provider: MeshProvider,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> WorkflowResult:
        reporter = ProgressReporter(progress_callback)
        with self._lock:
            self._running.append(request)

        logger.info("Starting %s workflow for room %s", request.type, request.room_id)

        try:
            handler = self._handlers.get(request.type)
            if handler is None:
                raise ValueError(f"Unknown workflow type: {request.type}")
            result = handler(request, scene_objects, mesh_provider, reporter)
        except Exception as exc:
            logger.exception("%s workflow failed for room %s", request.type, request.room_id)
            result = WorkflowResult(
                success=False,
                type=request.type,
                message=f"Workflow failed: {exc}",
            )
        finally:
            with self._lock:
                self._running.remove(request)

        result.estimated_time = reporter.elapsed() / 60
        with self._lock:
            self._history.append(result)

        logger.info("%s workflow finished: %s", request.type, result.message)
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def get_workflow_history(self) -> list[WorkflowResult]:
        """Finished runs, oldest first, bounded by ``WORKFLOW_HISTORY_LIMIT``."""
        with self._lock:
            return list(self._history)

    def get_current_workflow(self) -> Optional[WorkflowRequest]:
        """The most recently started run that has not finished yet."""
        with self._lock:
            return self._running[-1] if self._running else None

    def get_running_workflows(self) -> list[WorkflowRequest]:
        with self._lock:
            return list(self._running)

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _analyze(self, request, scene_objects, mesh_provider) -> RoomAnalysisResult:
        snapshot = mesh_provider.get_mesh_snapshot(request.room_id)
        if snapshot is None:
            raise RoomNotFoundError(request.room_id)
        return self.analyzer.analyze_room(snapshot, scene_objects, request.room_id)

    def _fire_safety(self, request, analysis) -> Optional[FireSafetyValidationResult]:
        if not request.fire_safety:
            return None
        return self.fire_safety.validate_analysis(analysis)

    @staticmethod
    def placed_objects(object_type: str, layouts: list[PlacementLayout]) -> list[SceneObject]:
        return [
            SceneObject(
                id=f"optimized-{object_type.lower()}-{index}",
                type=object_type,
                position=layout.position,
                rotation=layout.rotation,
                scale=Point3D(1.0, 1.0, 1.0),
            )
            for index, layout in enumerate(layouts, start=1)
        ]

    @staticmethod
    def user_satisfaction(efficiency: float, safety: float, accessibility: float) -> float:
        return efficiency * 0.4 + safety * 0.3 + accessibility * 0.3

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------
    def _space_optimization(self, request, scene_objects, mesh_provider, reporter) -> WorkflowResult:
        target = request.target_furniture or "Chair"
        strategy = request.strategy or "maximize"

        reporter.update("Analyzing room space", 0)
        analysis = self._analyze(request, scene_objects, mesh_provider)
        effective = self.clearance.calculate_effective_clearance(
            target, request.context.activity, request.context.user_count
        )
        overrides = {}
        if request.custom_clearance is not None:
            overrides["min_clearance"] = request.custom_clearance

        optimization = self.optimizer.optimize_space(
            analysis.room_geometry,
            target,
            strategy,
            config_overrides=overrides,
            existing_objects=scene_objects,
        )
        layouts = optimization.layouts
        if request.max_objects is not None:
            layouts = layouts[:request.max_objects]

        reporter.update("Checking constraints", 25)
        validation = self.validator.validate_analysis(analysis, scene_objects, [target])
        fire = self._fire_safety(request, analysis)

        reporter.update("Optimizing layout", 45)
        association = self.associations.get_association(target)

        reporter.update("Applying clearance settings", 80)
        placed = self.placed_objects(target, layouts)

        reporter.update("Optimization complete", 100)

        safety = fire.score / 100 if fire else 1.0
        accessibility = validation.score / 100
        metrics = WorkflowMetrics(
            efficiency=optimization.efficiency,
            safety=safety,
            accessibility=accessibility,
            user_satisfaction=self.user_satisfaction(
                optimization.efficiency, safety, accessibility
            ),
        )

        recommendations = list(optimization.warnings)
        recommendations.extend(s.description for s in validation.suggestions)
        violations = list(validation.violations)
        if fire:
            recommendations.extend(v.description for v in fire.violations)
            recommendations.extend(fire.recommendations)
            violations.extend(fire.violations)
        if association:
            recommendations.append(
                f"{association.description}: consider placing companions"
            )

        return WorkflowResult(
            success=True,
            type="space_optimization",
            message=(
                f"Successfully optimized space: {len(placed)} objects placed "
                f"with {metrics.efficiency * 100:.1f}% efficiency"
            ),
            data={
                "space_analysis": optimization,
                "effective_clearance": effective,
                "placed_objects": placed,
                "recommendations": recommendations,
                "violations": violations,
                "metrics": metrics,
            },
            next_steps=[
                "Review placed objects in the scene",
                "Adjust clearance settings if needed",
                "Consider layout reorganization for better flow",
            ],
        )

    def _layout_generation(self, request, scene_objects, mesh_provider, reporter) -> WorkflowResult:
        strategy = request.strategy or "maximize"
        types = [request.target_furniture] if request.target_furniture else list(DEFAULT_LAYOUT_TYPES)

        reporter.update("Analyzing room requirements", 0)
        analysis = self._analyze(request, scene_objects, mesh_provider)

        reporter.update("Generating layout options", 30)
        results = [
            (object_type, self.optimizer.optimize_space(
                analysis.room_geometry, object_type, strategy,
                existing_objects=scene_objects,
            ))
            for object_type in types
        ]

        reporter.update("Evaluating layouts", 80)
        present = {obj.type for obj in furniture_only(scene_objects)} | set(types)
        options = []
        for object_type, optimization in results:
            options.append(LayoutOption(
                object_type=object_type,
                strategy=strategy,
                optimization=optimization,
                clearance_score=self.clearance.calculate_effective_clearance(
                    object_type, request.context.activity, request.context.user_count
                ) if optimization.layouts else 0.0,
                association_score=self.association_score(object_type, present),
            ))

        reporter.update("Layout generation complete", 100)

        return WorkflowResult(
            success=True,
            type="layout_generation",
            message=f"Generated {len(options)} layout options",
            data={"layout_generation": options},
            next_steps=[
                "Review and select preferred layout",
                "Apply selected layout to scene",
                "Provide feedback for continuous improvement",
            ],
        )

    def association_score(self, object_type: str, present_types: set[str]) -> float:
        """0.1 for every companion of ``object_type`` already present, capped at 1."""
        association = self.associations.get_association(object_type)
        if association is None:
            return 0.0
        score = sum(0.1 for c in association.associated_types if c.type in present_types)
        return min(score, 1.0)

    def _room_analysis(self, request, scene_objects, mesh_provider, reporter) -> WorkflowResult:
        reporter.update("Analyzing room geometry", 0)
        analysis = self._analyze(request, scene_objects, mesh_provider)

        reporter.update("Identifying constraints", 25)
        recommendations = []
        if not analysis.doors:
            recommendations.append("No doors found; add egress doors before placing furniture")

        reporter.update("Evaluating placement zones", 50)
        for path in analysis.accessibility_paths:
            if path.width < self.validator.ADA_PATH_WIDTH:
                recommendations.append(
                    f"Clear pathway {path.id}: {path.width:.2f}m is below the 0.91m ADA minimum"
                )

        reporter.update("Generating recommendations", 75)
        optimal = analysis.zones_of_type("optimal")
        restricted = analysis.zones_of_type("restricted")
        recommendations.append(f"{len(optimal)} optimal placement zones available")
        if restricted:
            recommendations.append(
                f"Keep {len(restricted)} restricted zones near doors clear of furniture"
            )
        recommendations.append("Consider space optimization for better utilization")

        reporter.update("Room analysis complete", 100)

        return WorkflowResult(
            success=True,
            type="room_analysis",
            message="Room analysis completed successfully",
            data={"room_analysis": analysis, "recommendations": recommendations},
            next_steps=[
                "Proceed with space optimization",
                "Generate layout options",
                "Set up furniture associations",
            ],
        )

    def _reorganization(self, request, scene_objects, mesh_provider, reporter) -> WorkflowResult:
        reporter.update("Analyzing current layout", 0)
        snapshot = mesh_provider.get_mesh_snapshot(request.room_id)
        if snapshot is None:
            raise RoomNotFoundError(request.room_id)

        reorganization = self.reorganizer.analyze_and_suggest_reorganization(
            snapshot, scene_objects, request.room_id, request.goals or DEFAULT_GOALS
        )

        reporter.update("Identifying improvement opportunities", 30)
        clearance_improvements = [
            (obj.id, self.clearance.calculate_effective_clearance(
                obj.type, request.context.activity, request.context.user_count
            ))
            for obj in furniture_only(scene_objects)
        ]

        reporter.update("Generating reorganization plans", 70)
        recommendations = [
            suggestion.reason
            for plan in reorganization.reorganization_plans
            for suggestion in plan.suggestions
        ]
        recommendations.extend(
            f"Adjust clearance for {object_id} to {value:.1f}m"
            for object_id, value in clearance_improvements
        )

        reporter.update("Reorganization analysis complete", 100)

        return WorkflowResult(
            success=True,
            type="reorganization",
            message=(
                "Reorganization analysis complete: "
                f"{len(reorganization.reorganization_plans)} improvement plans generated"
            ),
            data={
                "reorganization": reorganization,
                "recommendations": recommendations[:10],
            },
            next_steps=[
                "Review reorganization suggestions",
                "Apply selected improvements",
                "Provide feedback on changes",
            ],
        )

    def _ai_assistance(self, request, scene_objects, mesh_provider, reporter) -> WorkflowResult:
        reporter.update("Processing user query", 0)
        if not request.user_query:
            raise ValueError("User query is required for AI assistance")

        reporter.update("Analyzing scene context", 20)
        analysis = self._analyze(request, scene_objects, mesh_provider)
        furniture = furniture_only(scene_objects)
        context = {
            "room_id": request.room_id,
            "object_count": len(furniture),
            "furniture_types": sorted({obj.type for obj in furniture}),
            "user_query": request.user_query,
            "previous_feedback": list(request.context.previous_feedback),
        }

        reporter.update("Generating response", 50)
        validation = self.validator.validate_analysis(analysis, scene_objects)
        types = ", ".join(context["furniture_types"]) or "no furniture"
        response = (
            f"Room {request.room_id} has {len(furniture)} objects ({types}) "
            f"and scores {validation.score:.0f}/100."
        )

        reporter.update("Providing actionable recommendations", 80)
        recommendations = [v.description for v in validation.violations]
        recommendations.extend(w.description for w in validation.warnings)
        if not recommendations:
            recommendations.append("Layout meets all checked constraints")
        recommendations = recommendations[:5]

        reporter.update("AI assistance complete", 100)

        return WorkflowResult(
            success=True,
            type="ai_assistance",
            message="AI assistance completed successfully",
            data={
                "ai_response": response,
                "context": context,
                "recommendations": recommendations,
            },
            next_steps=[
                "Review AI suggestions",
                "Execute specific workflows for implementation",
                "Provide feedback on AI recommendations",
            ],
        )
