import pytest

from roomplanner.services.constraints import ADA_PATHWAY
from roomplanner.services.furniture_catalog import get_spec
from roomplanner.services.placement_validator import PlacementValidator
from roomplanner.services.room_analyzer import analyze_room_geometry

from .factories import door, furniture, snapshot, square


@pytest.fixture
def validator(analyzer):
    return PlacementValidator(analyzer)


@pytest.fixture
def room():
    return analyze_room_geometry(square(4.0))


@pytest.mark.parametrize("distance, severity", [
    (1.0, "info"),
    (0.8, "warning"),
    (0.5, "error"),
])
def test_desk_spacing_severity(validator, distance, severity):
    desk_a = furniture("desk-a", "Desk", 1.0, 2.0)
    desk_b = furniture("desk-b", "Desk", 1.0 + distance, 2.0)

    records = validator.check_object_clearance(desk_a, desk_b)

    assert len(records) == 1
    record = records[0]
    assert record.severity == severity
    assert record.id == "clearance-objects-desk-a-desk-b"
    assert record.measurement.actual == pytest.approx(distance)
    assert record.measurement.required == pytest.approx(1.2)
    assert record.affected_objects == ("desk-a", "desk-b")
    assert record.required_action == "move"


def test_well_spaced_objects_pass(validator):
    desk_a = furniture("desk-a", "Desk", 0.0, 0.0)
    desk_b = furniture("desk-b", "Desk", 2.0, 0.0)

    assert validator.check_object_clearance(desk_a, desk_b) == []


def test_larger_access_clearance_wins(validator):
    chair = furniture("chair-1", "Chair", 0.0, 0.0)
    desk = furniture("desk-1", "Desk", 1.0, 0.0)

    record = validator.check_object_clearance(chair, desk)[0]
    assert record.measurement.required == pytest.approx(1.2)


def test_required_wall_clearance(validator):
    assert validator.required_wall_clearance(get_spec("Bookcase")) == 0.05
    assert validator.required_wall_clearance(get_spec("TV")) == 0.05
    assert validator.required_wall_clearance(get_spec("Chair")) == 0.3
    assert validator.required_wall_clearance(get_spec("Table")) == 0.8


@pytest.mark.parametrize("x, severity", [(0.1, "error"), (0.25, "warning")])
def test_chair_against_the_wall(validator, room, x, severity):
    chair = furniture("chair-1", "Chair", x, 2.0)

    records = validator.check_wall_clearance(chair, room)

    assert [r.severity for r in records] == [severity]
    assert records[0].id == "clearance-wall-chair-1"
    assert records[0].measurement.actual == pytest.approx(x)
    assert records[0].measurement.required == pytest.approx(0.3)


def test_wall_mounted_furniture_may_touch_the_wall(validator, room):
    bookcase = furniture("bookcase-1", "Bookcase", 0.2, 2.0)

    assert validator.check_wall_clearance(bookcase, room) == []


def test_empty_room_with_wide_door_scores_full_marks(validator, square_room):
    result = validator.validate_placement(square_room, [], "room-1")

    assert result.is_valid
    assert result.score == 100.0
    assert result.violations == []
    assert result.accessibility.meets_ada
    assert result.safety.fire_egress


def test_blocked_pathway_is_an_ada_error(validator, square_room):
    desk = furniture("desk-1", "Desk", 2.0, 1.0)
    result = validator.validate_placement(square_room, [desk], "room-1")

    pathway = next(v for v in result.violations if v.id == "pathway-width-path-door-1-center")
    assert pathway.type == "accessibility"
    assert pathway.affected_objects == ("desk-1",)
    assert pathway.regulation == ADA_PATHWAY
    assert not result.is_valid
    assert not result.accessibility.meets_ada


def test_info_records_become_suggestions(validator):
    room = snapshot(square(6.0), [door("door-1", 3.0, 0.0, width=1.2)])
    desks = [furniture("desk-a", "Desk", 1.5, 4.5), furniture("desk-b", "Desk", 2.5, 4.5)]

    result = validator.validate_placement(room, desks, "room-1")

    assert "clearance-objects-desk-a-desk-b" in {s.id for s in result.suggestions}
    assert "clearance-objects-desk-a-desk-b" not in {v.id for v in result.violations}


def test_focus_objects_limit_object_checks(validator):
    room = snapshot(square(6.0), [door("door-1", 3.0, 0.0, width=1.2)])
    objects = [
        furniture("desk-a", "Desk", 1.5, 4.5),
        furniture("desk-b", "Desk", 2.0, 4.5),
        furniture("chair-1", "Chair", 5.0, 5.0),
    ]

    focused = validator.validate_placement(room, objects, "room-1", focus_objects=["chair-1"])
    everything = validator.validate_placement(room, objects, "room-1")

    def clearance_ids(result):
        return {
            r.id for r in result.violations + result.warnings + result.suggestions
            if r.id.startswith("clearance-objects")
        }

    assert "clearance-objects-desk-a-desk-b" in clearance_ids(everything)
    assert clearance_ids(focused) == set()


def test_fire_safety_errors_count_as_violations(validator):
    room = snapshot(square(4.0))
    result = validator.validate_placement(room, [], "room-1")

    assert "no-egress-doors" in {v.id for v in result.violations}
    assert not result.is_valid


def test_score_is_clamped(validator):
    room = snapshot(square(3.0))
    crowd = [furniture(f"chair-{i}", "Chair", 0.2 + 0.1 * i, 0.2) for i in range(10)]

    result = validator.validate_placement(room, crowd, "room-1")

    assert result.score == 0.0
    assert 0.0 <= result.score <= 100.0


def test_desk_far_from_chair_gets_a_workflow_suggestion(validator):
    room = snapshot(square(6.0), [door("door-1", 3.0, 0.0, width=1.2)])
    objects = [furniture("desk-1", "Desk", 1.5, 4.5), furniture("chair-1", "Chair", 4.5, 4.5)]

    result = validator.validate_placement(room, objects, "room-1")

    assert "workflow-desk-chair-desk-1" in {s.id for s in result.suggestions}


def test_placement_suggestions_move_crowded_objects(validator, square_room):
    chair = furniture("chair-1", "Chair", 0.1, 2.0)

    suggestions = validator.generate_placement_suggestions(square_room, [chair], "room-1")

    assert len(suggestions) == 1
    suggestion = suggestions[0]
    assert suggestion.object_id == "chair-1"
    assert suggestion.improvement == pytest.approx(20.0)
    assert suggestion.reason.startswith("Better accessibility in")
    assert suggestion.suggested_position != chair.position
