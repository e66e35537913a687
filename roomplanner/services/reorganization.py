"""
Layout reorganization advisor.

Looks at an existing layout and its validation report and proposes concrete
edits: move an object out of a pathway or away from an exit, rotate it to
line up with a wall, add a missing companion chair and so on. The edits are
bundled into ranked plans. Nothing here mutates the scene; applying a plan
goes through callbacks supplied by the caller.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
import logging
import math

from .associations import AssociatedType, AssociationEngine
from .constraints import ADA_PATHWAY, IBC_EXIT_COUNT, PlacementConstraint, Regulation
from .furniture_catalog import footprint_bounds, spec_for
from .geometry import Point3D, RoomBounds, WallSegment, normalize_angle, plan_distance
from .placement_validator import PlacementValidationResult, PlacementValidator
from .room_analyzer import AccessibilityPath, PlacementZone, RoomAnalysisResult, RoomAnalyzer
from .scene import MeshSnapshot, RoomConstraint, SceneObject


logger = logging.getLogger(__name__)

GOALS = ("accessibility", "safety", "efficiency", "aesthetic", "associations")
DEFAULT_GOALS = ("accessibility", "safety", "associations")

PRIORITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class ReorganizationSuggestion:
    id: str
    type: str  # move, rotate, group, remove, add
    object_id: str
    current_position: Point3D
    suggested_position: Point3D
    reason: str
    improvement_score: float
    priority: str  # critical, high, medium, low
    current_rotation: Optional[Point3D] = None
    suggested_rotation: Optional[Point3D] = None
    regulation: Optional[Regulation] = None
    object_type: Optional[str] = None  # type to create for "add" suggestions


@dataclass
class ReorganizationPlan:
    id: str
    name: str
    description: str
    suggestions: list[ReorganizationSuggestion]
    overall_improvement: float
    violations_resolved: int
    new_violations_introduced: int
    estimated_time: int  # minutes
    difficulty: str  # easy, medium, hard


@dataclass
class ReorganizationAnalysis:
    current_score: float
    potential_score: float
    major_issues: list[PlacementConstraint] = field(default_factory=list)
    minor_issues: list[PlacementConstraint] = field(default_factory=list)
    reorganization_plans: list[ReorganizationPlan] = field(default_factory=list)
    quick_fixes: list[ReorganizationSuggestion] = field(default_factory=list)
    space_utilization_improvement: float = 0.0
    accessibility_improvement: float = 0.0
    safety_improvement: float = 0.0


UpdatePosition = Callable[[str, Point3D, Optional[Point3D]], None]
RemoveObject = Callable[[str], None]
AddObject = Callable[[str, Point3D, Optional[Point3D]], None]


class ReorganizationAdvisor:
    """Suggests and bundles layout improvements."""

    EGRESS_CLEARANCE = 1.5
    RESTRICTED_PROXIMITY = 1.5
    SEARCH_STEP = 0.25
    ALIGNMENT_TOLERANCE = 0.1  # radians, about 6 degrees
    ASSOCIATION_TOLERANCE = 0.3

    def __init__(
        self,
        analyzer: Optional[RoomAnalyzer] = None,
        validator: Optional[PlacementValidator] = None,
        associations: Optional[AssociationEngine] = None,
    ):
        self.analyzer = analyzer or RoomAnalyzer()
        self.validator = validator or PlacementValidator(self.analyzer)
        self.associations = associations or AssociationEngine()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def analyze_and_suggest_reorganization(
        self,
        snapshot: MeshSnapshot,
        scene_objects: list[SceneObject],
        room_id: str,
        goals: Optional[Iterable[str]] = None,
    ) -> ReorganizationAnalysis:
        goals = tuple(goals) if goals else DEFAULT_GOALS
        unknown = set(goals) - set(GOALS)
        if unknown:
            raise ValueError(f"Unknown reorganization goals: {sorted(unknown)}")

        logger.info("Analyzing layout for reorganization in room %s (%s)", room_id, ", ".join(goals))

        analysis = self.analyzer.analyze_room(snapshot, scene_objects, room_id)
        validation = self.validator.validate_analysis(analysis, scene_objects)
        furniture = self.analyzer.furniture_in_room(analysis.room_geometry, scene_objects)

        if not furniture:
            return ReorganizationAnalysis(current_score=100.0, potential_score=100.0)

        suggestions = self.generate_suggestions(furniture, analysis, validation, goals)
        plans = self.create_plans(suggestions)
        quick_fixes = [
            s for s in suggestions
            if s.priority == "high" and s.improvement_score >= 20 and s.type != "remove"
        ][:5]

        potential = validation.score
        if plans:
            potential = min(100.0, validation.score + plans[0].overall_improvement)

        logger.info(
            "Reorganization for room %s: %d suggestions, %d plans",
            room_id, len(suggestions), len(plans),
        )

        return ReorganizationAnalysis(
            current_score=validation.score,
            potential_score=potential,
            major_issues=validation.violations,
            minor_issues=validation.warnings,
            reorganization_plans=plans,
            quick_fixes=quick_fixes,
            space_utilization_improvement=self._space_utilization_improvement(plans),
            accessibility_improvement=self._accessibility_improvement(plans),
            safety_improvement=self._safety_improvement(plans),
        )

    def apply_reorganization_plan(
        self,
        plan: ReorganizationPlan,
        update_position: UpdatePosition,
        remove: RemoveObject,
        add: AddObject,
    ) -> list[str]:
        """
        Replay a plan through the scene callbacks.

        Returns the ids of suggestions whose callback raised; the remaining
        suggestions are still applied.
        """
        logger.info("Applying reorganization plan: %s", plan.name)
        failed = []
        for suggestion in plan.suggestions:
            try:
                if suggestion.type in ("move", "rotate", "group"):
                    update_position(
                        suggestion.object_id,
                        suggestion.suggested_position,
                        suggestion.suggested_rotation,
                    )
                elif suggestion.type == "remove":
                    remove(suggestion.object_id)
                elif suggestion.type == "add":
                    add(
                        suggestion.object_type or "Chair",
                        suggestion.suggested_position,
                        suggestion.suggested_rotation,
                    )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to apply suggestion %s: %s", suggestion.id, exc)
                failed.append(suggestion.id)

        logger.info(
            "Applied %d of %d reorganization suggestions",
            len(plan.suggestions) - len(failed), len(plan.suggestions),
        )
        return failed

    # ------------------------------------------------------------------
    # Suggestion generation
    # ------------------------------------------------------------------
    def generate_suggestions(
        self,
        furniture: list[SceneObject],
        analysis: RoomAnalysisResult,
        validation: PlacementValidationResult,
        goals: Iterable[str],
    ) -> list[ReorganizationSuggestion]:
        """All suggestions for the goals, ranked by priority then score."""
        goals = set(goals)
        suggestions = []
        if "accessibility" in goals:
            suggestions.extend(self._accessibility_suggestions(furniture, analysis))
        if "safety" in goals:
            suggestions.extend(self._safety_suggestions(furniture, analysis, validation))
        if "efficiency" in goals:
            suggestions.extend(self._efficiency_suggestions(furniture, analysis))
        if "aesthetic" in goals:
            suggestions.extend(self._aesthetic_suggestions(furniture, analysis))
        if "associations" in goals:
            suggestions.extend(self._association_suggestions(furniture, analysis))

        suggestions.sort(
            key=lambda s: (PRIORITY_ORDER[s.priority], s.improvement_score),
            reverse=True,
        )

        # Several checks can flag the same object; keep the best ranked one.
        seen = set()
        unique = []
        for suggestion in suggestions:
            if suggestion.id not in seen:
                seen.add(suggestion.id)
                unique.append(suggestion)
        return unique

    def _accessibility_suggestions(self, furniture, analysis):
        suggestions = []
        for path in analysis.accessibility_paths:
            if path.width >= 0.91:
                continue
            for obj in furniture:
                if not self.is_object_blocking_path(obj, path):
                    continue
                position = self.find_better_position_for_accessibility(obj, analysis)
                if position is None:
                    continue
                suggestions.append(ReorganizationSuggestion(
                    id=f"accessibility-move-{obj.id}",
                    type="move",
                    object_id=obj.id,
                    current_position=obj.position,
                    suggested_position=position,
                    reason=(
                        f"Move to improve pathway width from {path.width:.1f}m "
                        "to ADA minimum 0.91m"
                    ),
                    improvement_score=min(50.0, (0.91 - path.width) * 100),
                    priority="critical",
                    regulation=ADA_PATHWAY,
                ))

        restricted = analysis.zones_of_type("restricted")
        if restricted:
            for obj in furniture:
                near = any(
                    plan_distance(obj.position, zone.center) < self.RESTRICTED_PROXIMITY
                    for zone in restricted
                )
                if not near:
                    continue
                position = self.find_position_away_from_restricted_zones(obj, analysis)
                if position is None:
                    continue
                suggestions.append(ReorganizationSuggestion(
                    id=f"accessibility-clear-{obj.id}",
                    type="move",
                    object_id=obj.id,
                    current_position=obj.position,
                    suggested_position=position,
                    reason="Move away from restricted zone to improve wheelchair maneuvering space",
                    improvement_score=35,
                    priority="high",
                ))
        return suggestions

    def _safety_suggestions(self, furniture, analysis, validation):
        suggestions = []
        for door in analysis.doors:
            for obj in furniture:
                if plan_distance(obj.position, door.position) >= self.EGRESS_CLEARANCE:
                    continue
                position = self.find_position_away_from_egress(obj, door, furniture, analysis)
                if position is not None:
                    suggestions.append(ReorganizationSuggestion(
                        id=f"safety-egress-{obj.id}",
                        type="move",
                        object_id=obj.id,
                        current_position=obj.position,
                        suggested_position=position,
                        reason="Move away from egress door to maintain fire safety clearance",
                        improvement_score=40,
                        priority="critical",
                        regulation=IBC_EXIT_COUNT,
                    ))
                else:
                    suggestions.append(ReorganizationSuggestion(
                        id=f"safety-remove-{obj.id}",
                        type="remove",
                        object_id=obj.id,
                        current_position=obj.position,
                        suggested_position=obj.position,
                        reason="Remove to keep fire egress door clear; no safe position found",
                        improvement_score=30,
                        priority="high",
                        regulation=IBC_EXIT_COUNT,
                    ))

        by_id = {obj.id: obj for obj in furniture}
        for violation in validation.violations + validation.warnings:
            if violation.type != "clearance":
                continue
            for object_id in violation.affected_objects:
                obj = by_id.get(object_id)
                if obj is None:
                    continue
                position = self.find_position_with_adequate_clearance(obj, furniture, analysis)
                if position is None:
                    continue
                suggestions.append(ReorganizationSuggestion(
                    id=f"safety-clearance-{obj.id}",
                    type="move",
                    object_id=obj.id,
                    current_position=obj.position,
                    suggested_position=position,
                    reason=violation.description,
                    improvement_score=30,
                    priority="critical" if violation.severity == "error" else "high",
                ))
        return suggestions

    def _efficiency_suggestions(self, furniture, analysis):
        suggestions = []
        optimal = analysis.zones_of_type("optimal")
        for obj in furniture:
            current = self.find_zone_for_position(obj.position, analysis.placement_zones)
            if current is None or current.type not in ("poor", "acceptable"):
                continue
            target = next(
                (z for z in optimal
                 if obj.type in z.recommended_for
                 and not self.is_zone_occupied(z, furniture, obj.id)),
                None,
            )
            if target is None:
                continue
            suggestions.append(ReorganizationSuggestion(
                id=f"efficiency-optimal-{obj.id}",
                type="move",
                object_id=obj.id,
                current_position=obj.position,
                suggested_position=Point3D(target.center.x, obj.position.y, target.center.z),
                reason=f"Move from {current.type} zone to optimal zone for better space utilization",
                improvement_score=25,
                priority="medium",
            ))
        return suggestions

    def _aesthetic_suggestions(self, furniture, analysis):
        suggestions = []
        room = analysis.room_geometry
        for obj in furniture:
            wall = self.find_nearest_wall(obj.position, room)
            if wall is None:
                continue
            aligned = self.wall_aligned_rotation(wall)
            if abs(normalize_angle(obj.rotation.y - aligned.y)) <= self.ALIGNMENT_TOLERANCE:
                continue
            suggestions.append(ReorganizationSuggestion(
                id=f"aesthetic-align-{obj.id}",
                type="rotate",
                object_id=obj.id,
                current_position=obj.position,
                suggested_position=obj.position,
                current_rotation=obj.rotation,
                suggested_rotation=Point3D(obj.rotation.x, aligned.y, obj.rotation.z),
                reason="Rotate to align with nearest wall for better visual harmony",
                improvement_score=15,
                priority="low",
            ))

        min_x, min_z, max_x, max_z = room.get_bounds()
        center = Point3D.on_floor((min_x + max_x) / 2, (min_z + max_z) / 2)
        by_type: dict[str, list[SceneObject]] = {}
        for obj in furniture:
            by_type.setdefault(obj.type, []).append(obj)

        for object_type, objects in by_type.items():
            if len(objects) != 2:
                continue
            first, second = objects
            midpoint = first.position.add(second.position).scale(0.5)
            offset = Point3D(midpoint.x - center.x, 0.0, midpoint.z - center.z)
            score = max(0.0, 100 - offset.length() * 10)
            suggestions.append(ReorganizationSuggestion(
                id=f"aesthetic-symmetry-{first.id}",
                type="move",
                object_id=first.id,
                current_position=first.position,
                suggested_position=Point3D(
                    center.x - offset.x, first.position.y, center.z - offset.z
                ),
                reason=f"Arrange {object_type} symmetrically for better visual balance",
                improvement_score=min(score, 100.0),
                priority="low",
            ))
        return suggestions

    def _association_suggestions(self, furniture, analysis):
        suggestions = []
        for obj in furniture:
            association = self.associations.get_association(obj.type)
            if association is None:
                continue
            for companion in association.associated_types:
                partners = [o for o in furniture if o.type == companion.type and o.id != obj.id]
                if not partners:
                    if companion.priority == "required":
                        suggestions.extend(self._add_companions(obj, companion, analysis))
                    continue

                partner = min(partners, key=lambda o: plan_distance(obj.position, o.position))
                distance = plan_distance(obj.position, partner.position)
                if abs(distance - companion.distance) <= self.ASSOCIATION_TOLERANCE:
                    continue

                ideal = self.ideal_associated_position(obj, partner, companion, analysis)
                if ideal is None:
                    continue
                position, rotation = ideal
                suggestions.append(ReorganizationSuggestion(
                    id=f"association-{obj.id}-{partner.id}",
                    type="move",
                    object_id=partner.id,
                    current_position=partner.position,
                    suggested_position=position,
                    current_rotation=partner.rotation,
                    suggested_rotation=rotation,
                    reason=(
                        f"Position {companion.type} at ideal distance "
                        f"from {obj.type} ({companion.distance}m)"
                    ),
                    improvement_score=25,
                    priority="medium",
                ))
        return suggestions

    def _add_companions(self, obj, companion: AssociatedType, analysis):
        placement = self.associations.calculate_associated_placements(
            obj.type, obj.position, obj.rotation, analysis.room_geometry
        )
        suggestions = []
        room = analysis.room_geometry
        index = 0
        for item in placement.associated_objects:
            if item.type != companion.type or not room.contains(item.position):
                continue
            suggestions.append(ReorganizationSuggestion(
                id=f"association-add-{obj.id}-{companion.type.lower()}-{index}",
                type="add",
                object_id=obj.id,
                current_position=obj.position,
                suggested_position=item.position,
                suggested_rotation=item.rotation,
                reason=f"Add {companion.type} required by {obj.type}",
                improvement_score=20,
                priority="medium",
                object_type=companion.type,
            ))
            index += 1
        return suggestions

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_object_blocking_path(obj: SceneObject, path: AccessibilityPath) -> bool:
        return obj.id in path.blocked_by

    @staticmethod
    def find_better_position_for_accessibility(
        obj: SceneObject,
        analysis: RoomAnalysisResult,
    ) -> Optional[Point3D]:
        """Center of the most accessible optimal/good zone at least 1 m away."""
        zones = sorted(
            analysis.zones_of_type("optimal", "good"),
            key=lambda z: z.accessibility_score,
            reverse=True,
        )
        for zone in zones:
            if plan_distance(zone.center, obj.position) > 1.0:
                return Point3D(zone.center.x, obj.position.y, zone.center.z)
        return None

    @staticmethod
    def find_position_away_from_restricted_zones(
        obj: SceneObject,
        analysis: RoomAnalysisResult,
    ) -> Optional[Point3D]:
        zones = [z for z in analysis.placement_zones if z.type not in ("restricted", "poor")]
        if not zones:
            return None
        best = max(zones, key=lambda z: z.clearance_score)
        if plan_distance(best.center, obj.position) < 0.5:
            return None
        return Point3D(best.center.x, obj.position.y, best.center.z)

    def _is_free_spot(
        self,
        obj: SceneObject,
        position: Point3D,
        furniture: list[SceneObject],
        room: RoomBounds,
    ) -> bool:
        """The object's footprint at ``position`` stays inside and off other footprints."""
        moved_bounds = footprint_bounds(obj)
        half_w = (moved_bounds[2] - moved_bounds[0]) / 2
        half_d = (moved_bounds[3] - moved_bounds[1]) / 2
        corners = [
            (position.x - half_w, position.z - half_d),
            (position.x + half_w, position.z - half_d),
            (position.x + half_w, position.z + half_d),
            (position.x - half_w, position.z + half_d),
        ]
        if not all(room.contains(Point3D.on_floor(x, z)) for x, z in corners):
            return False

        for other in furniture:
            if other.id == obj.id:
                continue
            o_min_x, o_min_z, o_max_x, o_max_z = footprint_bounds(other)
            if (
                position.x - half_w < o_max_x and position.x + half_w > o_min_x
                and position.z - half_d < o_max_z and position.z + half_d > o_min_z
            ):
                return False
        return True

    def find_position_away_from_egress(
        self,
        obj: SceneObject,
        door: RoomConstraint,
        furniture: list[SceneObject],
        analysis: RoomAnalysisResult,
    ) -> Optional[Point3D]:
        """
        March away from the door until the object clears every exit.

        Rays start pointing from the door through the object and fan out in
        45 degree steps either side. The first free spot at least 1.5 m from
        all doors wins.
        """
        room = analysis.room_geometry
        doors = analysis.doors
        base = math.atan2(obj.position.z - door.position.z, obj.position.x - door.position.x)
        min_x, min_z, max_x, max_z = room.get_bounds()
        reach = math.hypot(max_x - min_x, max_z - min_z)
        steps = int(reach / self.SEARCH_STEP)

        for offset in (0, 1, -1, 2, -2, 3, -3, 4):
            angle = base + offset * math.pi / 4
            dx, dz = math.cos(angle), math.sin(angle)
            for k in range(1, steps + 1):
                candidate = Point3D(
                    obj.position.x + dx * k * self.SEARCH_STEP,
                    obj.position.y,
                    obj.position.z + dz * k * self.SEARCH_STEP,
                )
                if not room.contains(candidate):
                    break
                if any(plan_distance(candidate, d.position) < self.EGRESS_CLEARANCE for d in doors):
                    continue
                if self._is_free_spot(obj, candidate, furniture, room):
                    return candidate
        return None

    def find_position_with_adequate_clearance(
        self,
        obj: SceneObject,
        furniture: list[SceneObject],
        analysis: RoomAnalysisResult,
    ) -> Optional[Point3D]:
        """Best scoring zone center that satisfies wall and object clearances."""
        spec = spec_for(obj)
        room = analysis.room_geometry
        wall_clearance = self.validator.required_wall_clearance(spec)
        zones = sorted(
            (z for z in analysis.placement_zones if z.type != "restricted"),
            key=lambda z: z.clearance_score,
            reverse=True,
        )

        for zone in zones:
            candidate = Point3D(zone.center.x, obj.position.y, zone.center.z)
            if plan_distance(candidate, obj.position) < 0.5:
                continue
            if room.distance_to_nearest_wall(candidate) < wall_clearance:
                continue
            clear = all(
                plan_distance(candidate, other.position)
                >= max(spec.clearance.access, spec_for(other).clearance.access)
                for other in furniture
                if other.id != obj.id
            )
            if clear:
                return candidate
        return None

    @staticmethod
    def find_zone_for_position(
        position: Point3D,
        zones: list[PlacementZone],
    ) -> Optional[PlacementZone]:
        for zone in zones:
            if zone.contains(position):
                return zone
        return None

    @staticmethod
    def is_zone_occupied(zone: PlacementZone, furniture: list[SceneObject], exclude_id: str) -> bool:
        return any(obj.id != exclude_id and zone.contains(obj.position) for obj in furniture)

    @staticmethod
    def find_nearest_wall(position: Point3D, room: RoomBounds) -> Optional[WallSegment]:
        nearest = None
        min_distance = float("inf")
        for wall in room.wall_segments:
            distance = wall.distance_to_point(position)
            if distance < min_distance:
                min_distance = distance
                nearest = wall
        return nearest

    @staticmethod
    def wall_aligned_rotation(wall: WallSegment) -> Point3D:
        """Rotation that puts the object's back to the wall, facing into the room."""
        return Point3D(0.0, math.atan2(wall.normal.x, wall.normal.z), 0.0)

    def ideal_associated_position(
        self,
        primary: SceneObject,
        partner: SceneObject,
        companion: AssociatedType,
        analysis: RoomAnalysisResult,
    ) -> Optional[tuple[Point3D, Point3D]]:
        """Closest rule-derived slot for ``partner`` around ``primary``."""
        placement = self.associations.calculate_associated_placements(
            primary.type, primary.position, primary.rotation, analysis.room_geometry
        )
        slots = [
            item for item in placement.associated_objects
            if item.type == companion.type and analysis.room_geometry.contains(item.position)
        ]
        if not slots:
            return None
        best = min(slots, key=lambda item: plan_distance(item.position, partner.position))
        return best.position, best.rotation

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------
    @staticmethod
    def _average(suggestions: list[ReorganizationSuggestion]) -> float:
        return sum(s.improvement_score for s in suggestions) / len(suggestions)

    def create_plans(self, suggestions: list[ReorganizationSuggestion]) -> list[ReorganizationPlan]:
        plans = []

        critical = [s for s in suggestions if s.priority == "critical"]
        if critical:
            plans.append(ReorganizationPlan(
                id="critical-fixes",
                name="Critical Safety & Accessibility Fixes",
                description="Address only the most critical safety and accessibility violations",
                suggestions=critical,
                overall_improvement=self._average(critical),
                violations_resolved=len(critical),
                new_violations_introduced=0,
                estimated_time=len(critical) * 5,
                difficulty="easy",
            ))

        comprehensive = [s for s in suggestions if s.priority in ("critical", "high")][:10]
        if comprehensive:
            plans.append(ReorganizationPlan(
                id="comprehensive",
                name="Comprehensive Layout Improvement",
                description="Address all major issues and significantly improve the layout",
                suggestions=comprehensive,
                overall_improvement=self._average(comprehensive),
                violations_resolved=len(comprehensive),
                new_violations_introduced=math.floor(len(comprehensive) * 0.1),
                estimated_time=len(comprehensive) * 8,
                difficulty="medium",
            ))

        complete = suggestions[:15]
        if len(complete) > len(comprehensive):
            plans.append(ReorganizationPlan(
                id="complete-optimization",
                name="Complete Space Optimization",
                description="Full reorganization for optimal space utilization, aesthetics, and compliance",
                suggestions=complete,
                overall_improvement=self._average(complete),
                violations_resolved=sum(
                    1 for s in complete if s.priority in ("critical", "high")
                ),
                new_violations_introduced=math.floor(len(complete) * 0.15),
                estimated_time=len(complete) * 10,
                difficulty="hard",
            ))

        plans.sort(key=lambda p: p.overall_improvement, reverse=True)
        return plans

    @staticmethod
    def _space_utilization_improvement(plans: list[ReorganizationPlan]) -> float:
        if not plans:
            return 0.0
        total = sum(
            min(sum(1 for s in plan.suggestions if s.type == "move") * 5, 30)
            for plan in plans
        )
        return min(total / len(plans), 100.0)

    @staticmethod
    def _keyword_score(plan: ReorganizationPlan, keywords: tuple[str, ...]) -> float:
        return sum(
            s.improvement_score for s in plan.suggestions
            if any(word in s.reason.lower() for word in keywords)
        )

    def _accessibility_improvement(self, plans: list[ReorganizationPlan]) -> float:
        if not plans:
            return 0.0
        keywords = ("accessibility", "clearance", "path")
        total = sum(min(self._keyword_score(plan, keywords), 40) for plan in plans)
        return min(total / len(plans), 100.0)

    def _safety_improvement(self, plans: list[ReorganizationPlan]) -> float:
        if not plans:
            return 0.0
        keywords = ("safety", "fire", "egress", "emergency")
        total = sum(
            min(self._keyword_score(plan, keywords) + plan.violations_resolved * 10, 50)
            for plan in plans
        )
        return min(total / len(plans), 100.0)
