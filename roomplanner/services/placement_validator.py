"""
Validation of furniture placements in a room.

Checks clearances to walls and between objects, ADA accessibility (pathway
width, turning space, clear floor space), fire egress and a couple of
ergonomic rules, then condenses the result into a 0-100 score.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional
import logging
import math

from .constraints import (
    ADA_CLEAR_FLOOR,
    ADA_PATHWAY,
    ADA_TURNING_SPACE,
    FURNITURE_GUIDELINES,
    IBC_EGRESS_WIDTH,
    Measurement,
    PlacementConstraint,
)
from .fire_safety import FireSafetyValidator
from .furniture_catalog import FurnitureSpec, spec_for
from .geometry import Point3D, RoomBounds, plan_distance
from .room_analyzer import RoomAnalysisResult, RoomAnalyzer
from .scene import MeshSnapshot, SceneObject


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessibilityAssessment:
    meets_ada: bool
    pathway_width: float
    maneuvering: bool
    reach_zones: bool


@dataclass(frozen=True)
class SafetyAssessment:
    fire_egress: bool
    emergency_access: bool
    structural_safety: bool = True


@dataclass(frozen=True)
class ErgonomicsAssessment:
    workflow_efficiency: float
    comfort_level: float
    functional_zones: bool


@dataclass
class PlacementValidationResult:
    is_valid: bool
    score: float
    violations: list[PlacementConstraint] = field(default_factory=list)
    warnings: list[PlacementConstraint] = field(default_factory=list)
    suggestions: list[PlacementConstraint] = field(default_factory=list)
    accessibility: Optional[AccessibilityAssessment] = None
    safety: Optional[SafetyAssessment] = None
    ergonomics: Optional[ErgonomicsAssessment] = None


@dataclass(frozen=True)
class PlacementSuggestion:
    object_id: str
    current_position: Point3D
    suggested_position: Point3D
    reason: str
    improvement: float
    alternatives: tuple[Point3D, ...] = ()


def _midpoint(a: Point3D, b: Point3D) -> Point3D:
    return a.add(b).scale(0.5)


class PlacementValidator:
    """Scores a room layout against clearance, accessibility and safety rules."""

    ADA_PATH_WIDTH = 0.91  # 36 in
    ADA_SECONDARY_PATH_WIDTH = 0.81  # 32 in
    TURNING_RADIUS = 0.76  # 60 in diameter circle
    TURNING_DIAMETER = 1.52
    CLEAR_FLOOR_SPACE = 0.76  # 30 in
    FIRE_EGRESS_WIDTH = 1.12
    MAX_RESTRICTED_RATIO = 0.2
    WALL_MOUNT_CLEARANCE = 0.05
    MIN_WALL_CLEARANCE = 0.3

    def __init__(
        self,
        analyzer: Optional[RoomAnalyzer] = None,
        fire_safety: Optional[FireSafetyValidator] = None,
    ):
        self.analyzer = analyzer or RoomAnalyzer()
        self.fire_safety = fire_safety or FireSafetyValidator(self.analyzer)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def validate_placement(
        self,
        snapshot: MeshSnapshot,
        scene_objects: list[SceneObject],
        room_id: str,
        focus_objects: Optional[Iterable[str]] = None,
    ) -> PlacementValidationResult:
        logger.info("Validating placement in room %s", room_id)
        analysis = self.analyzer.analyze_room(snapshot, scene_objects, room_id)
        return self.validate_analysis(analysis, scene_objects, focus_objects)

    def validate_analysis(
        self,
        analysis: RoomAnalysisResult,
        scene_objects: list[SceneObject],
        focus_objects: Optional[Iterable[str]] = None,
    ) -> PlacementValidationResult:
        """
        Validate a room that has already been analyzed.

        ``focus_objects`` holds object ids or types; when given, object
        checks only report records that involve a focused object.
        """
        objects = self.analyzer.furniture_in_room(analysis.room_geometry, scene_objects)
        specs = [spec_for(obj) for obj in objects]
        focus = set(focus_objects) if focus_objects else None

        def focused(*objs: SceneObject) -> bool:
            return focus is None or any(o.id in focus or o.type in focus for o in objs)

        records: list[PlacementConstraint] = []
        for i, obj in enumerate(objects):
            if focused(obj):
                records.extend(self.check_wall_clearance(obj, analysis.room_geometry, specs[i]))
            for j in range(i + 1, len(objects)):
                if focused(obj, objects[j]):
                    records.extend(self.check_object_clearance(obj, objects[j], specs[i], specs[j]))

        records.extend(self.check_pathway_widths(analysis))
        records.extend(self.check_maneuvering_space(analysis))
        records.extend(
            c for c in self.check_reach_zones(objects, specs) if focused(*self._by_ids(objects, c))
        )

        safety_warnings = self.check_fire_egress_paths(analysis)
        safety_warnings.extend(self.check_emergency_access(analysis, objects))

        fire = self.fire_safety.validate_analysis(analysis)
        records.extend(v for v in fire.violations if v.severity == "error")
        safety_warnings.extend(v for v in fire.violations if v.severity == "warning")

        suggestions = self.check_workflow(objects, specs)
        suggestions.extend(self.check_comfort_zones(analysis, objects, specs))

        errors = [r for r in records if r.severity == "error"]
        warning_records = [r for r in records if r.severity == "warning"]
        info_records = [r for r in records if r.severity == "info"]

        accessibility = self.assess_accessibility(analysis, records)
        safety = self.assess_safety(records, safety_warnings)
        ergonomics = self.assess_ergonomics(analysis, objects, specs)

        score = 100.0
        score -= len(errors) * 25
        score -= len(warning_records) * 10
        score -= len(safety_warnings) * 5
        if not accessibility.meets_ada:
            score -= 20
        if not safety.fire_egress:
            score -= 15
        score += ergonomics.workflow_efficiency * 0.1
        score = max(0.0, min(100.0, score))

        result = PlacementValidationResult(
            is_valid=not errors,
            score=score,
            violations=errors,
            warnings=warning_records + safety_warnings,
            suggestions=info_records + suggestions,
            accessibility=accessibility,
            safety=safety,
            ergonomics=ergonomics,
        )
        logger.info(
            "Validation complete: %.0f/100 score, %d violations",
            result.score, len(result.violations),
        )
        return result

    @staticmethod
    def _by_ids(objects: list[SceneObject], constraint: PlacementConstraint) -> list[SceneObject]:
        return [o for o in objects if o.id in constraint.affected_objects]

    # ------------------------------------------------------------------
    # Clearance
    # ------------------------------------------------------------------
    def required_wall_clearance(self, spec: FurnitureSpec) -> float:
        if spec.wall_placement == "required":
            return self.WALL_MOUNT_CLEARANCE
        return max(self.MIN_WALL_CLEARANCE, spec.clearance.back)

    def check_wall_clearance(
        self,
        obj: SceneObject,
        room: RoomBounds,
        spec: Optional[FurnitureSpec] = None,
    ) -> list[PlacementConstraint]:
        """Compare the distance to the nearest wall segment with the requirement."""
        spec = spec or spec_for(obj)
        distance = room.distance_to_nearest_wall(obj.position)
        required = self.required_wall_clearance(spec)
        if distance >= required:
            return []

        return [PlacementConstraint(
            id=f"clearance-wall-{obj.id}",
            type="clearance",
            severity="error" if distance < required * 0.7 else "warning",
            description=f"{spec.type} too close to wall",
            affected_objects=(obj.id,),
            position=obj.position,
            required_action="move",
            measurement=Measurement(distance, required),
            regulation=FURNITURE_GUIDELINES,
        )]

    def check_object_clearance(
        self,
        obj_a: SceneObject,
        obj_b: SceneObject,
        spec_a: Optional[FurnitureSpec] = None,
        spec_b: Optional[FurnitureSpec] = None,
    ) -> list[PlacementConstraint]:
        """
        Check the spacing between two objects.

        The larger of the two access clearances is required. Below 50% of it
        the record is an error, below 80% a warning, otherwise info.
        """
        spec_a = spec_a or spec_for(obj_a)
        spec_b = spec_b or spec_for(obj_b)
        distance = plan_distance(obj_a.position, obj_b.position)
        required = max(spec_a.clearance.access, spec_b.clearance.access)
        if distance >= required:
            return []

        if distance < required * 0.5:
            severity = "error"
        elif distance < required * 0.8:
            severity = "warning"
        else:
            severity = "info"

        return [PlacementConstraint(
            id=f"clearance-objects-{obj_a.id}-{obj_b.id}",
            type="clearance",
            severity=severity,
            description=f"Insufficient clearance between {spec_a.type} and {spec_b.type}",
            affected_objects=(obj_a.id, obj_b.id),
            position=_midpoint(obj_a.position, obj_b.position),
            required_action="move",
            measurement=Measurement(distance, required),
        )]

    # ------------------------------------------------------------------
    # Accessibility
    # ------------------------------------------------------------------
    def check_pathway_widths(self, analysis: RoomAnalysisResult) -> list[PlacementConstraint]:
        records = []
        for path in analysis.accessibility_paths:
            if path.width >= self.ADA_PATH_WIDTH:
                continue
            records.append(PlacementConstraint(
                id=f"pathway-width-{path.id}",
                type="accessibility",
                severity="error" if path.width < self.ADA_SECONDARY_PATH_WIDTH else "warning",
                description="Pathway too narrow for accessibility",
                affected_objects=path.blocked_by,
                position=_midpoint(path.start, path.end),
                required_action="move",
                measurement=Measurement(path.width, self.ADA_PATH_WIDTH),
                regulation=ADA_PATHWAY,
            ))
        return records

    def check_maneuvering_space(self, analysis: RoomAnalysisResult) -> list[PlacementConstraint]:
        records = []
        for zone in analysis.zones_of_type("optimal", "good"):
            radius = math.sqrt(zone.area / math.pi)
            if radius >= self.TURNING_RADIUS:
                continue
            records.append(PlacementConstraint(
                id=f"maneuvering-space-{zone.id}",
                type="accessibility",
                severity="warning",
                description="Insufficient space for wheelchair maneuvering",
                affected_objects=zone.constraints,
                position=zone.center,
                required_action="move",
                measurement=Measurement(radius * 2, self.TURNING_DIAMETER),
                regulation=ADA_TURNING_SPACE,
            ))
        return records

    def check_reach_zones(
        self,
        objects: list[SceneObject],
        specs: list[FurnitureSpec],
    ) -> list[PlacementConstraint]:
        records = []
        for obj, spec in zip(objects, specs):
            if spec.category not in ("desk", "appliance"):
                continue
            if spec.clearance.front >= self.CLEAR_FLOOR_SPACE:
                continue
            records.append(PlacementConstraint(
                id=f"reach-zone-{obj.id}",
                type="accessibility",
                severity="warning",
                description=f"Insufficient clear floor space at {spec.type}",
                affected_objects=(obj.id,),
                position=obj.position,
                required_action="move",
                measurement=Measurement(spec.clearance.front, self.CLEAR_FLOOR_SPACE),
                regulation=ADA_CLEAR_FLOOR,
            ))
        return records

    # ------------------------------------------------------------------
    # Safety
    # ------------------------------------------------------------------
    def check_fire_egress_paths(self, analysis: RoomAnalysisResult) -> list[PlacementConstraint]:
        """Paths leaving a fire exit door must be at least 1.12 m wide."""
        records = []
        for exit_door in analysis.doors:
            if not exit_door.is_fire_exit:
                continue
            path = next(
                (p for p in analysis.accessibility_paths
                 if plan_distance(p.start, exit_door.position) < 0.5),
                None,
            )
            if path is None or path.width >= self.FIRE_EGRESS_WIDTH:
                continue
            records.append(PlacementConstraint(
                id=f"fire-egress-{exit_door.id}",
                type="safety",
                severity="warning",
                description="Fire egress path may be too narrow",
                affected_objects=path.blocked_by,
                position=exit_door.position,
                required_action="move",
                measurement=Measurement(path.width, self.FIRE_EGRESS_WIDTH),
                regulation=IBC_EGRESS_WIDTH,
            ))
        return records

    def check_emergency_access(
        self,
        analysis: RoomAnalysisResult,
        objects: list[SceneObject],
    ) -> list[PlacementConstraint]:
        restricted = analysis.zones_of_type("restricted")
        if not restricted or analysis.room_geometry.area == 0:
            return []

        ratio = sum(z.area for z in restricted) / analysis.room_geometry.area
        if ratio <= self.MAX_RESTRICTED_RATIO:
            return []
        return [PlacementConstraint(
            id="emergency-access-restriction",
            type="safety",
            severity="warning",
            description="Large areas of room are inaccessible for emergency response",
            affected_objects=tuple(o.id for o in objects),
            required_action="move",
            measurement=Measurement(ratio, self.MAX_RESTRICTED_RATIO, "ratio"),
        )]

    # ------------------------------------------------------------------
    # Ergonomics
    # ------------------------------------------------------------------
    @staticmethod
    def _nearest(origin: Point3D, candidates):
        return min(candidates, key=lambda c: plan_distance(origin, c.position), default=None)

    def check_workflow(
        self,
        objects: list[SceneObject],
        specs: list[FurnitureSpec],
    ) -> list[PlacementConstraint]:
        desks = [o for o, s in zip(objects, specs) if s.category == "desk"]
        seats = [o for o, s in zip(objects, specs) if s.category == "seating"]
        records = []
        for desk in desks:
            chair = self._nearest(desk.position, seats)
            if chair is None:
                continue
            distance = plan_distance(desk.position, chair.position)
            if distance > 1.5:
                records.append(PlacementConstraint(
                    id=f"workflow-desk-chair-{desk.id}",
                    type="ergonomic",
                    severity="suggestion",
                    description="Desk and chair could be positioned closer for better workflow",
                    affected_objects=(desk.id, chair.id),
                    position=desk.position,
                    required_action="move",
                    measurement=Measurement(distance, 1.2),
                ))
        return records

    def check_comfort_zones(
        self,
        analysis: RoomAnalysisResult,
        objects: list[SceneObject],
        specs: list[FurnitureSpec],
    ) -> list[PlacementConstraint]:
        windows = analysis.windows
        records = []
        if not windows:
            return records

        for seat, spec in zip(objects, specs):
            if spec.category != "seating":
                continue
            window = self._nearest(seat.position, windows)
            distance = plan_distance(seat.position, window.position)
            if distance > 3.0:
                records.append(PlacementConstraint(
                    id=f"comfort-lighting-{seat.id}",
                    type="ergonomic",
                    severity="suggestion",
                    description="Seating could be positioned closer to natural light",
                    affected_objects=(seat.id,),
                    position=seat.position,
                    required_action="move",
                    measurement=Measurement(distance, 2.5),
                ))
        return records

    # ------------------------------------------------------------------
    # Assessments
    # ------------------------------------------------------------------
    @staticmethod
    def assess_accessibility(
        analysis: RoomAnalysisResult,
        records: list[PlacementConstraint],
    ) -> AccessibilityAssessment:
        accessibility = [r for r in records if r.type == "accessibility"]
        return AccessibilityAssessment(
            meets_ada=not any(r.severity == "error" for r in accessibility),
            pathway_width=min((p.width for p in analysis.accessibility_paths), default=0.0),
            maneuvering=not any("maneuvering" in r.id for r in accessibility),
            reach_zones=not any("reach" in r.id for r in accessibility),
        )

    @staticmethod
    def assess_safety(
        records: list[PlacementConstraint],
        warnings: list[PlacementConstraint],
    ) -> SafetyAssessment:
        safety = [r for r in records if r.type == "safety"]
        return SafetyAssessment(
            fire_egress=not any(
                "egress" in r.id or "travel-distance" in r.id for r in safety
            ),
            emergency_access=not any(
                "emergency" in r.id or "access-route" in r.id for r in safety + warnings
            ),
        )

    def workflow_efficiency(self, objects: list[SceneObject], specs: list[FurnitureSpec]) -> float:
        score = 70.0
        desks = [o for o, s in zip(objects, specs) if s.category == "desk"]
        seats = [o for o, s in zip(objects, specs) if s.category == "seating"]
        if desks and seats:
            total = 0.0
            for desk in desks:
                chair = self._nearest(desk.position, seats)
                total += plan_distance(desk.position, chair.position)
            average = total / len(desks)
            if average < 1.5:
                score += 20
            elif average > 2.0:
                score -= 10
        return max(0.0, min(100.0, score))

    def assess_ergonomics(
        self,
        analysis: RoomAnalysisResult,
        objects: list[SceneObject],
        specs: list[FurnitureSpec],
    ) -> ErgonomicsAssessment:
        return ErgonomicsAssessment(
            workflow_efficiency=self.workflow_efficiency(objects, specs),
            comfort_level=75.0,
            functional_zones=bool(analysis.zones_of_type("optimal")),
        )

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------
    def object_score(
        self,
        obj: SceneObject,
        objects: list[SceneObject],
        room: RoomBounds,
    ) -> tuple[list[PlacementConstraint], float]:
        """Wall and object clearance records for one object and a 0-100 score."""
        records = self.check_wall_clearance(obj, room)
        for other in objects:
            if other.id != obj.id:
                records.extend(self.check_object_clearance(obj, other))
        return records, max(0.0, 100.0 - len(records) * 20)

    def generate_placement_suggestions(
        self,
        snapshot: MeshSnapshot,
        scene_objects: list[SceneObject],
        room_id: str,
        goal: str = "accessibility",
    ) -> list[PlacementSuggestion]:
        """
        Suggest a better spot for every object scoring below 80.

        Candidate spots are the centers of optimal and good placement zones.
        """
        analysis = self.analyzer.analyze_room(snapshot, scene_objects, room_id)
        objects = self.analyzer.furniture_in_room(analysis.room_geometry, scene_objects)
        zones = analysis.zones_of_type("optimal", "good")
        suggestions = []

        for obj in objects:
            records, current = self.object_score(obj, objects, analysis.room_geometry)
            if not records and current >= 80:
                continue

            candidates = []
            for zone in zones:
                moved = replace(obj, position=Point3D(zone.center.x, obj.position.y, zone.center.z))
                others = [moved if o.id == obj.id else o for o in objects]
                _, score = self.object_score(moved, others, analysis.room_geometry)
                if score > current:
                    candidates.append((score - current, moved.position, zone))

            if not candidates:
                continue
            candidates.sort(key=lambda c: c[0], reverse=True)
            improvement, position, zone = candidates[0]
            suggestions.append(PlacementSuggestion(
                object_id=obj.id,
                current_position=obj.position,
                suggested_position=position,
                reason=f"Better {goal} in {zone.type} zone",
                improvement=improvement,
                alternatives=tuple(c[1] for c in candidates[1:4]),
            ))

        suggestions.sort(key=lambda s: s.improvement, reverse=True)
        return suggestions
