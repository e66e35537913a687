"""
Dynamic clearance policy.

Keeps per-object-type clearance settings for the lifetime of the process and
adjusts their adaptive multiplier from user feedback ("too crowded", "too
sparse" and so on). This is the only stateful planning service; one instance
is shared by the application and all access goes through a re-entrant lock.
"""

from dataclasses import dataclass, field, replace
from typing import Optional
import logging
import math
import threading

from .errors import ObjectNotFoundError
from .geometry import Point3D
from .scene import SceneObject


logger = logging.getLogger(__name__)

FEEDBACK_TYPES = ("too_crowded", "just_right", "too_sparse", "uncomfortable")

SEVERITY_STEP = {"mild": 0.1, "moderate": 0.2, "severe": 0.4}
SEVERITY_CONFIDENCE = {"mild": 0.6, "moderate": 0.8, "severe": 1.0}
FEEDBACK_DIRECTION = {
    "too_crowded": 1.0,
    "uncomfortable": 0.8,
    "too_sparse": -1.0,
    "just_right": 0.0,
}

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 2.0
MIN_EFFECTIVE_CLEARANCE = 0.3


@dataclass
class ClearanceSettings:
    object_type: str
    base_clearance: float = 0.8
    personal_space: float = 0.6
    activity_clearance: float = 0.4
    comfort_buffer: float = 0.2
    emergency_access: float = 0.9
    adaptive_multiplier: float = 1.0


@dataclass(frozen=True)
class UserContext:
    activity: str = ""
    severity: str = "moderate"  # mild, moderate, severe


@dataclass(frozen=True)
class ClearanceAdjustmentRequest:
    object_id: str
    feedback: str  # one of FEEDBACK_TYPES
    location: Point3D
    affected_objects: tuple[str, ...] = ()
    user_context: Optional[UserContext] = None

    @property
    def severity(self) -> str:
        if self.user_context and self.user_context.severity in SEVERITY_STEP:
            return self.user_context.severity
        return "moderate"

    @property
    def activity(self) -> str:
        return self.user_context.activity if self.user_context else ""


@dataclass(frozen=True)
class AffectedObject:
    object_id: str
    clearance_change: float
    reposition_required: bool


@dataclass
class ClearanceAdjustmentResult:
    object_id: str
    previous_clearance: float
    new_clearance: float
    adjustment_reason: str
    confidence: float
    suggested_positions: list[Point3D] = field(default_factory=list)
    affected_objects: list[AffectedObject] = field(default_factory=list)


@dataclass(frozen=True)
class SuggestedAdjustment:
    object_id: str
    suggestion_type: str  # move, adjust_clearance, remove
    details: str


@dataclass
class CrowdingPrediction:
    risk_level: str  # low, medium, high
    potential_issues: list[str] = field(default_factory=list)
    suggested_adjustments: list[SuggestedAdjustment] = field(default_factory=list)


def create_default_settings(object_type: str) -> ClearanceSettings:
    """Generic baseline with hand-tuned values for common furniture."""
    settings = ClearanceSettings(object_type=object_type)
    key = object_type.lower()

    if key in ("desk", "standing desk", "adjustable desk"):
        return replace(settings, base_clearance=1.2, activity_clearance=0.6)
    if key == "chair":
        return replace(settings, base_clearance=0.6, personal_space=0.4)
    if key == "table":
        return replace(settings, base_clearance=1.0, activity_clearance=0.8)
    if key == "sofa":
        return replace(settings, base_clearance=1.0, personal_space=0.8)
    if key in ("bed single", "bed double"):
        return replace(settings, personal_space=1.0)
    if key == "bookcase":
        return replace(settings, base_clearance=0.9, personal_space=0.4)
    if key == "tv":
        return replace(settings, base_clearance=2.0, activity_clearance=1.5)
    return settings


def current_clearance(settings: ClearanceSettings) -> float:
    """Sum of the additive clearance terms scaled by the adaptive multiplier."""
    return (
        settings.base_clearance
        + settings.personal_space
        + settings.activity_clearance
        + settings.comfort_buffer
    ) * settings.adaptive_multiplier


class ClearancePolicy:
    """Learns per-type clearance multipliers from user feedback."""

    DEFAULT_TYPES = [
        "Desk", "Chair", "Table", "Sofa", "Bed Single", "Bed Double",
        "Bookcase", "TV", "Standing Desk", "Adjustable Desk",
    ]

    def __init__(self):
        self._lock = threading.RLock()
        self._settings: dict[str, ClearanceSettings] = {}
        self._history: dict[str, list[ClearanceAdjustmentRequest]] = {}
        self._crowding_tolerance = 0.5
        self._preferred_spacing = 1.0
        self._activity_preferences: dict[str, float] = {}
        self._initialize_defaults()

    def _initialize_defaults(self) -> None:
        for object_type in self.DEFAULT_TYPES:
            self._settings[object_type] = create_default_settings(object_type)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_clearance_settings(self, object_type: str) -> ClearanceSettings:
        """Return a copy of the settings for a type, creating defaults if absent."""
        with self._lock:
            settings = self._settings.get(object_type)
            if settings is None:
                settings = create_default_settings(object_type)
                self._settings[object_type] = settings
            return replace(settings)

    @property
    def crowding_tolerance(self) -> float:
        return self._crowding_tolerance

    def activity_preference(self, activity: str) -> float:
        with self._lock:
            return self._activity_preferences.get(activity, 1.0)

    def calculate_effective_clearance(
        self,
        object_type: str,
        activity: Optional[str] = None,
        user_count: Optional[int] = None,
    ) -> float:
        """
        Clearance to use for an object in context.

        Applies the adaptive multiplier, then the learned activity preference,
        then +20% per person beyond the first, then the global spacing
        preference. Never returns less than 0.3 m.
        """
        settings = self.get_clearance_settings(object_type)
        clearance = settings.base_clearance * settings.adaptive_multiplier

        if activity:
            clearance *= self.activity_preference(activity)
        if user_count and user_count > 1:
            clearance *= 1 + (user_count - 1) * 0.2

        clearance *= self._preferred_spacing
        return max(clearance, MIN_EFFECTIVE_CLEARANCE)

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    def process_clearance_feedback(
        self,
        request: ClearanceAdjustmentRequest,
        scene_objects: list[SceneObject],
    ) -> ClearanceAdjustmentResult:
        """
        Record feedback for an object and adjust its type's multiplier.

        Raises:
            ObjectNotFoundError: the object id is not in ``scene_objects``.
        """
        target = next((o for o in scene_objects if o.id == request.object_id), None)
        if target is None:
            raise ObjectNotFoundError(request.object_id)

        with self._lock:
            self._history.setdefault(request.object_id, []).append(request)

            settings = self.get_clearance_settings(target.type)
            previous = current_clearance(settings)

            adjustment = self._calculate_adjustment(request)
            multiplier = min(
                MAX_MULTIPLIER,
                max(MIN_MULTIPLIER, settings.adaptive_multiplier + adjustment),
            )
            settings = replace(settings, adaptive_multiplier=multiplier)
            self._settings[target.type] = settings
            new = current_clearance(settings)

            self._update_global_learning(request)
            confidence = self._calculate_confidence(request, target.type)

        logger.info(
            "Clearance feedback %s for %s (%s): multiplier %.2f",
            request.feedback, target.id, target.type, multiplier,
        )

        return ClearanceAdjustmentResult(
            object_id=request.object_id,
            previous_clearance=previous,
            new_clearance=new,
            adjustment_reason=self._adjustment_reason(request, adjustment),
            confidence=confidence,
            suggested_positions=self._alternative_positions(target, scene_objects, new),
            affected_objects=self._affected_objects(target, scene_objects, previous, new),
        )

    @staticmethod
    def _calculate_adjustment(request: ClearanceAdjustmentRequest) -> float:
        step = SEVERITY_STEP[request.severity]
        return step * FEEDBACK_DIRECTION.get(request.feedback, 0.0)

    @staticmethod
    def _affected_objects(
        target: SceneObject,
        scene_objects: list[SceneObject],
        previous: float,
        new: float,
    ) -> list[AffectedObject]:
        change = new - previous
        search_radius = max(previous, new) * 2
        affected = []
        for obj in scene_objects:
            if obj.id == target.id:
                continue
            distance = obj.position.distance_to(target.position)
            if distance <= search_radius:
                affected.append(AffectedObject(
                    object_id=obj.id,
                    clearance_change=change,
                    reposition_required=distance < new,
                ))
        return affected

    @staticmethod
    def _alternative_positions(
        target: SceneObject,
        scene_objects: list[SceneObject],
        clearance: float,
    ) -> list[Point3D]:
        """Up to three compass points at ``clearance`` that keep others at bay."""
        alternatives = []
        origin = target.position
        for step in range(8):
            angle = math.radians(step * 45)
            candidate = Point3D(
                origin.x + clearance * math.cos(angle),
                origin.y,
                origin.z + clearance * math.sin(angle),
            )
            too_close = any(
                obj.id != target.id and obj.position.distance_to(candidate) < clearance
                for obj in scene_objects
            )
            if not too_close:
                alternatives.append(candidate)
        return alternatives[:3]

    @staticmethod
    def _adjustment_reason(request: ClearanceAdjustmentRequest, adjustment: float) -> str:
        direction = "increased" if adjustment > 0 else "decreased"
        reason = (
            f"Clearance {direction} by {abs(adjustment) * 100:.0f}% "
            f'based on user feedback: "{request.feedback}"'
        )
        if request.activity:
            reason += f" during {request.activity}"
        return reason

    def _calculate_confidence(self, request: ClearanceAdjustmentRequest, object_type: str) -> float:
        history = self._history.get(request.object_id, [])
        type_history = [
            entry
            for entries in self._history.values()
            for entry in entries
            if object_type in entry.object_id
        ]
        feedback_confidence = min(1.0, (len(history) + len(type_history)) / 10)
        return (feedback_confidence + SEVERITY_CONFIDENCE[request.severity]) / 2

    def _update_global_learning(self, request: ClearanceAdjustmentRequest) -> None:
        if request.feedback == "too_crowded":
            self._crowding_tolerance = max(0.1, self._crowding_tolerance - 0.05)
        elif request.feedback == "too_sparse":
            self._crowding_tolerance = min(1.0, self._crowding_tolerance + 0.05)

        if request.activity:
            current = self._activity_preferences.get(request.activity, 1.0)
            delta = 0.1 if request.feedback == "too_crowded" else -0.1
            self._activity_preferences[request.activity] = min(
                MAX_MULTIPLIER, max(MIN_MULTIPLIER, current + delta)
            )

    # ------------------------------------------------------------------
    # Prediction and bulk helpers
    # ------------------------------------------------------------------
    def predict_crowding_issues(
        self,
        scene_objects: list[SceneObject],
        new_type: str,
        new_position: Point3D,
    ) -> CrowdingPrediction:
        """Check a hypothetical new object against everything already placed."""
        issues = []
        adjustments = []
        new_clearance = self.calculate_effective_clearance(new_type)

        for obj in scene_objects:
            distance = obj.position.distance_to(new_position)
            required = (new_clearance + self.calculate_effective_clearance(obj.type)) / 2
            if distance >= required:
                continue

            issues.append(
                f"{new_type} too close to {obj.type} "
                f"({distance:.1f}m < {required:.1f}m required)"
            )
            if distance < required * 0.5:
                adjustments.append(SuggestedAdjustment(
                    object_id=obj.id,
                    suggestion_type="move",
                    details=f"Move {obj.type} to maintain {required:.1f}m clearance",
                ))
            else:
                adjustments.append(SuggestedAdjustment(
                    object_id=obj.id,
                    suggestion_type="adjust_clearance",
                    details=f"Reduce clearance requirement by {required - distance:.1f}m",
                ))

        risk = "low"
        if len(issues) > 3:
            risk = "high"
        elif len(issues) > 1:
            risk = "medium"

        return CrowdingPrediction(
            risk_level=risk,
            potential_issues=issues,
            suggested_adjustments=adjustments,
        )

    def apply_learned_preferences(self, layout_objects: list[dict]) -> list[dict]:
        """Annotate ``{"type", "position"}`` dicts with their adjusted clearance."""
        return [
            {**obj, "adjusted_clearance": self.calculate_effective_clearance(obj["type"])}
            for obj in layout_objects
        ]

    def get_feedback_statistics(self) -> dict:
        with self._lock:
            by_type = {feedback: 0 for feedback in FEEDBACK_TYPES}
            counts = {}
            total = 0
            for object_id, entries in self._history.items():
                total += len(entries)
                counts[object_id] = len(entries)
                for entry in entries:
                    if entry.feedback in by_type:
                        by_type[entry.feedback] += 1

            most_adjusted = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:5]
            multipliers = [s.adaptive_multiplier for s in self._settings.values()]

            return {
                "total_feedback": total,
                "feedback_by_type": by_type,
                "most_adjusted_objects": [object_id for object_id, _ in most_adjusted],
                "average_adjustment": (
                    sum(multipliers) / len(multipliers) if multipliers else 1.0
                ),
            }

    def reset_clearance_settings(self) -> None:
        with self._lock:
            self._settings.clear()
            self._history.clear()
            self._crowding_tolerance = 0.5
            self._preferred_spacing = 1.0
            self._activity_preferences.clear()
            self._initialize_defaults()
