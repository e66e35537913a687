"""
Fire egress validation for a single room.

Rule of thumb checks based on the International Building Code: egress door
width, exit capacity for the estimated occupant load, travel distance from
the far corners and separation between exits.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging
import math

from ..conf import get_setting
from .constraints import (
    IBC_EGRESS_WIDTH,
    IBC_EXIT_CAPACITY,
    IBC_EXIT_COUNT,
    IBC_EXIT_SEPARATION,
    IBC_TRAVEL_DISTANCE,
    Measurement,
    PlacementConstraint,
    count_severity,
)
from .geometry import plan_distance
from .room_analyzer import RoomAnalysisResult, RoomAnalyzer
from .scene import MeshSnapshot, SceneObject


logger = logging.getLogger(__name__)


@dataclass
class EgressAnalysis:
    primary_egress_width: float = 0.0
    secondary_egress_width: float = 0.0
    max_travel_distance: float = 0.0
    exit_capacity: float = 0.0
    occupant_load: int = 0


@dataclass
class FireSafetyValidationResult:
    compliant: bool
    score: float
    violations: list[PlacementConstraint] = field(default_factory=list)
    egress_analysis: EgressAnalysis = field(default_factory=EgressAnalysis)
    recommendations: list[str] = field(default_factory=list)


class FireSafetyValidator:
    """Checks a room's exits against IBC egress rules."""

    PRIMARY_EGRESS_WIDTH = 1.12  # 44 in
    SECONDARY_EGRESS_WIDTH = 0.81  # 32 in
    MAX_TRAVEL_DISTANCE = 76.0  # 250 ft
    WIDTH_PER_OCCUPANT = 0.0076  # 0.3 in per person
    MIN_EXIT_SEPARATION = 15.0  # 50 ft
    SECOND_EXIT_OCCUPANT_LOAD = 49
    PATH_ASSOCIATION_RADIUS = 1.0

    def __init__(self, analyzer: Optional[RoomAnalyzer] = None):
        self.analyzer = analyzer or RoomAnalyzer()

    def validate_fire_safety(
        self,
        snapshot: MeshSnapshot,
        scene_objects: list[SceneObject],
        room_id: str,
    ) -> FireSafetyValidationResult:
        analysis = self.analyzer.analyze_room(snapshot, scene_objects, room_id)
        return self.validate_analysis(analysis)

    def validate_analysis(self, analysis: RoomAnalysisResult) -> FireSafetyValidationResult:
        """Run every egress check against an already analyzed room."""
        violations: list[PlacementConstraint] = []
        recommendations: list[str] = []
        area = analysis.room_geometry.area
        occupant_load = math.ceil(area / get_setting("OCCUPANT_LOAD_FACTOR"))
        egress = EgressAnalysis(occupant_load=occupant_load)

        doors = analysis.doors
        if not doors:
            violations.append(PlacementConstraint(
                id="no-egress-doors",
                type="safety",
                severity="error",
                description="No egress doors found",
                measurement=Measurement(0, 1, "doors"),
                regulation=IBC_EXIT_COUNT,
            ))
        else:
            self._check_egress_widths(analysis, occupant_load, egress, violations, recommendations)
            self._check_travel_distance(analysis, egress, violations, recommendations)
            self._check_exit_separation(analysis, occupant_load, violations, recommendations)

        errors = count_severity(violations, "error")
        warnings = count_severity(violations, "warning")
        score = max(0, 100 - errors * 30 - warnings * 15)

        logger.info(
            "Fire safety for room %s: score=%s, %d errors, %d warnings",
            analysis.room_id, score, errors, warnings,
        )

        return FireSafetyValidationResult(
            compliant=errors == 0,
            score=score,
            violations=violations,
            egress_analysis=egress,
            recommendations=recommendations,
        )

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------
    def effective_door_widths(self, analysis: RoomAnalysisResult) -> list[float]:
        """Door width capped by the width of the first path leaving it."""
        widths = []
        for door in analysis.doors:
            width = door.dimensions.width
            for path in analysis.accessibility_paths:
                if (
                    plan_distance(path.start, door.position) < self.PATH_ASSOCIATION_RADIUS
                    or plan_distance(path.end, door.position) < self.PATH_ASSOCIATION_RADIUS
                ):
                    width = min(width, path.width)
                    break
            widths.append(width)
        return widths

    def _check_egress_widths(self, analysis, occupant_load, egress, violations, recommendations):
        door_ids = tuple(d.id for d in analysis.doors)
        widths = self.effective_door_widths(analysis)

        ranked = sorted(widths, reverse=True)
        primary = ranked[0]
        secondary = ranked[1] if len(ranked) > 1 else 0.0
        capacity = sum(w / self.WIDTH_PER_OCCUPANT for w in widths)

        egress.primary_egress_width = primary
        egress.secondary_egress_width = secondary
        egress.exit_capacity = capacity

        if primary < self.PRIMARY_EGRESS_WIDTH:
            violations.append(PlacementConstraint(
                id="insufficient-primary-egress",
                type="safety",
                severity="error",
                description="Primary egress width insufficient",
                affected_objects=door_ids,
                required_action="move",
                measurement=Measurement(primary, self.PRIMARY_EGRESS_WIDTH),
                regulation=IBC_EGRESS_WIDTH,
            ))

        if occupant_load > self.SECOND_EXIT_OCCUPANT_LOAD and secondary == 0:
            recommendations.append("Room occupancy requires secondary egress route")
        elif 0 < secondary < self.SECONDARY_EGRESS_WIDTH:
            violations.append(PlacementConstraint(
                id="insufficient-secondary-egress",
                type="safety",
                severity="warning",
                description="Secondary egress width insufficient",
                affected_objects=door_ids,
                required_action="move",
                measurement=Measurement(secondary, self.SECONDARY_EGRESS_WIDTH),
                regulation=IBC_EGRESS_WIDTH,
            ))

        if capacity < occupant_load:
            violations.append(PlacementConstraint(
                id="insufficient-exit-capacity",
                type="safety",
                severity="error",
                description="Exit capacity insufficient for occupant load",
                affected_objects=door_ids,
                required_action="move",
                measurement=Measurement(capacity, occupant_load, "persons"),
                regulation=IBC_EXIT_CAPACITY,
            ))

    def _check_travel_distance(self, analysis, egress, violations, recommendations):
        doors = analysis.doors
        for corner in analysis.room_geometry.corners:
            nearest = min(plan_distance(corner, door.position) for door in doors)
            egress.max_travel_distance = max(egress.max_travel_distance, nearest)
            if nearest > self.MAX_TRAVEL_DISTANCE:
                violations.append(PlacementConstraint(
                    id=f"travel-distance-{corner.x}-{corner.z}",
                    type="safety",
                    severity="error",
                    description="Travel distance to exit exceeds maximum",
                    position=corner,
                    required_action="move",
                    measurement=Measurement(nearest, self.MAX_TRAVEL_DISTANCE),
                    regulation=IBC_TRAVEL_DISTANCE,
                ))

        for path in analysis.accessibility_paths:
            dead_end = all(
                plan_distance(path.start, door.position) > self.PATH_ASSOCIATION_RADIUS
                and plan_distance(path.end, door.position) > self.PATH_ASSOCIATION_RADIUS
                for door in doors
            )
            if dead_end and path.width < self.PRIMARY_EGRESS_WIDTH:
                recommendations.append(
                    "Potential dead-end corridor detected - ensure adequate width"
                )

    def _check_exit_separation(self, analysis, occupant_load, violations, recommendations):
        doors = analysis.doors
        if len(doors) == 1:
            if occupant_load > self.SECOND_EXIT_OCCUPANT_LOAD:
                recommendations.append("Room size suggests need for secondary exit")
            return

        for i, door_a in enumerate(doors):
            for door_b in doors[i + 1:]:
                distance = plan_distance(door_a.position, door_b.position)
                if distance < self.MIN_EXIT_SEPARATION:
                    violations.append(PlacementConstraint(
                        id=f"exit-separation-{door_a.id}-{door_b.id}",
                        type="safety",
                        severity="warning",
                        description="Insufficient separation between exits",
                        affected_objects=(door_a.id, door_b.id),
                        required_action="move",
                        measurement=Measurement(distance, self.MIN_EXIT_SEPARATION),
                        regulation=IBC_EXIT_SEPARATION,
                    ))
