from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.apps import AppConfig

if TYPE_CHECKING:
    from .services.associations import AssociationEngine
    from .services.clearance import ClearancePolicy
    from .services.fire_safety import FireSafetyValidator
    from .services.placement_validator import PlacementValidator
    from .services.reorganization import ReorganizationAdvisor
    from .services.room_analyzer import RoomAnalyzer
    from .services.space_optimizer import SpaceOptimizer
    from .services.workflow import WorkflowOrchestrator


@dataclass
class PlannerServices:
    """Service instances shared by every request in the process."""

    analyzer: "RoomAnalyzer"
    optimizer: "SpaceOptimizer"
    clearance: "ClearancePolicy"
    associations: "AssociationEngine"
    fire_safety: "FireSafetyValidator"
    validator: "PlacementValidator"
    reorganizer: "ReorganizationAdvisor"
    workflow: "WorkflowOrchestrator"


def build_services() -> PlannerServices:
    from .services.associations import AssociationEngine
    from .services.clearance import ClearancePolicy
    from .services.fire_safety import FireSafetyValidator
    from .services.placement_validator import PlacementValidator
    from .services.reorganization import ReorganizationAdvisor
    from .services.room_analyzer import RoomAnalyzer
    from .services.space_optimizer import SpaceOptimizer
    from .services.workflow import WorkflowOrchestrator

    analyzer = RoomAnalyzer()
    optimizer = SpaceOptimizer()
    clearance = ClearancePolicy()
    associations = AssociationEngine()
    fire_safety = FireSafetyValidator(analyzer)
    validator = PlacementValidator(analyzer, fire_safety)
    reorganizer = ReorganizationAdvisor(analyzer, validator, associations)
    workflow = WorkflowOrchestrator(
        analyzer=analyzer,
        optimizer=optimizer,
        validator=validator,
        fire_safety=fire_safety,
        reorganizer=reorganizer,
        clearance=clearance,
        associations=associations,
    )
    return PlannerServices(
        analyzer=analyzer,
        optimizer=optimizer,
        clearance=clearance,
        associations=associations,
        fire_safety=fire_safety,
        validator=validator,
        reorganizer=reorganizer,
        workflow=workflow,
    )


class RoomPlannerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "roomplanner"
    verbose_name = "Room planner"

    services: PlannerServices

    def ready(self) -> None:
        # One clearance policy per process: learned feedback is shared.
        self.services = build_services()
