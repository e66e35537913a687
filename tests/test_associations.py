import math

import pytest

from roomplanner.services.associations import AssociationEngine, ExpandedItem
from roomplanner.services.geometry import ZERO, Point3D
from roomplanner.services.room_analyzer import analyze_room_geometry

from .factories import square


@pytest.fixture
def engine():
    return AssociationEngine()


def test_desk_needs_a_chair(engine):
    association = engine.get_association("Desk")

    assert association.category == "office"
    companion = association.associated_types[0]
    assert (companion.type, companion.quantity, companion.priority) == ("Chair", 1, "required")


def test_unknown_type_has_no_association(engine):
    assert engine.get_association("Lamp") is None
    assert not engine.has_associations("Lamp")
    assert engine.get_association_description("Lamp") == "Lamp (no associations)"
    assert engine.get_association_description("Table") == "Dining/meeting table with 4 chairs"


def test_associations_by_category(engine):
    living = engine.get_associations_by_category("living")
    assert [a.primary_type for a in living] == ["TV", "Sofa"]
    assert "Conference Table" in engine.get_primary_furniture_types()


def test_expand_multiplies_companion_quantities(engine):
    assert engine.expand_furniture_request("Table", 2) == [
        ExpandedItem("Table", 2, "primary"),
        ExpandedItem("Chair", 8, "secondary"),
    ]


def test_expand_respects_priority_threshold(engine):
    preferred = engine.expand_furniture_request("TV")
    everything = engine.expand_furniture_request("TV", include_priority="optional")

    assert [item.type for item in preferred] == ["TV", "Sofa"]
    assert [item.type for item in everything] == ["TV", "Sofa", "Chair"]
    assert engine.expand_furniture_request("Lamp", 3) == [ExpandedItem("Lamp", 3, "primary")]


def test_facing_companion_sits_in_front(engine):
    placement = engine.calculate_associated_placements("Desk", Point3D(2.0, 0.0, 2.0), ZERO)

    assert len(placement.associated_objects) == 1
    chair = placement.associated_objects[0]
    assert chair.type == "Chair"
    assert chair.position.x == pytest.approx(2.0)
    assert chair.position.z == pytest.approx(2.6)
    assert chair.rotation.y == pytest.approx(math.pi)
    assert chair.group_id == "desk-group-0"


def test_facing_follows_primary_rotation(engine):
    placement = engine.calculate_associated_placements(
        "Desk", Point3D(2.0, 0.0, 2.0), Point3D(0.0, math.pi / 2, 0.0)
    )

    chair = placement.associated_objects[0]
    assert chair.position.x == pytest.approx(2.6)
    assert chair.position.z == pytest.approx(2.0)


def test_chairs_around_a_table(engine):
    center = Point3D(5.0, 0.0, 5.0)
    placement = engine.calculate_associated_placements("Table", center, ZERO)

    chairs = placement.associated_objects
    assert len(chairs) == 4
    assert [c.group_id for c in chairs] == [f"table-group-{i}" for i in range(4)]
    for chair in chairs:
        assert chair.position.distance_to(center) == pytest.approx(0.5)
        forward = (math.sin(chair.rotation.y), math.cos(chair.rotation.y))
        to_center = (
            (center.x - chair.position.x) / 0.5,
            (center.z - chair.position.z) / 0.5,
        )
        assert forward[0] * to_center[0] + forward[1] * to_center[1] == pytest.approx(1.0)


def test_adjacent_nightstands_flank_the_bed(engine):
    placement = engine.calculate_associated_placements("Bed Double", Point3D(3.0, 0.0, 3.0), ZERO)

    xs = sorted(item.position.x for item in placement.associated_objects)
    assert xs == pytest.approx([2.7, 3.3])


def test_placements_outside_the_room_are_dropped(engine):
    room = analyze_room_geometry(square(4.0))
    placement = engine.calculate_associated_placements(
        "Table", Point3D(0.2, 0.0, 0.2), ZERO, room
    )

    assert len(placement.associated_objects) == 2


def test_bounds_can_be_a_point_pair(engine):
    bounds = (Point3D(0.0, 0.0, 0.0), Point3D(4.0, 0.0, 4.0))
    placement = engine.calculate_associated_placements(
        "Desk", Point3D(2.0, 0.0, 3.8), ZERO, bounds
    )

    assert placement.associated_objects == []


def test_no_association_means_no_companions(engine):
    placement = engine.calculate_associated_placements("Lamp", ZERO, ZERO)

    assert placement.primary_position == ZERO
    assert placement.associated_objects == []
