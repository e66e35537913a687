import math

import ezdxf
import pytest
from ezdxf import units

from roomplanner.services.dxf_loader import (
    find_room_polygons,
    is_room_layer,
    load_room_snapshot,
    read_document,
    unit_factor,
)
from roomplanner.services.errors import PlanImportError


def new_plan(drawing_units=units.M):
    doc = ezdxf.new("R2010")
    doc.units = drawing_units
    for name in ("ROOM", "SPACE", "WALLS", "DOORS", "WINDOWS"):
        doc.layers.add(name)
    for name in ("DOOR", "EXIT", "WIN"):
        doc.blocks.new(name=name)
    return doc


@pytest.fixture
def plan_path(tmp_path):
    doc = new_plan()
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (5, 0), (5, 4), (0, 4)], close=True, dxfattribs={"layer": "ROOM"})
    msp.add_lwpolyline([(0, 0), (5, 0), (5, 4), (0, 4)], close=True, dxfattribs={"layer": "WALLS"})

    main = msp.add_blockref("DOOR", (2.5, 0), dxfattribs={"layer": "DOORS", "rotation": 90})
    main.add_attrib("WIDTH", "1.2", (2.5, 0))
    msp.add_blockref("EXIT", (0, 2), dxfattribs={"layer": "DOORS", "xscale": 2.0})
    msp.add_blockref("WIN", (5, 2), dxfattribs={"layer": "WINDOWS"})
    msp.add_blockref("DOOR", (20, 20), dxfattribs={"layer": "DOORS"})

    path = tmp_path / "office.dxf"
    doc.saveas(path)
    return path


def test_load_room_snapshot(plan_path):
    snapshot = load_room_snapshot(plan_path, "office")

    assert snapshot.id == "office"
    assert [(p.x, p.z) for p in snapshot.floor_polygon] == [(0, 0), (5, 0), (5, 4), (0, 4)]
    low, high = snapshot.bounding_box
    assert (low.x, low.z, high.x, high.z) == (0, 0, 5, 4)


def test_openings_near_the_room_are_attached(plan_path):
    snapshot = load_room_snapshot(plan_path, "office")

    doors = snapshot.constraints_of_type("door")
    windows = snapshot.constraints_of_type("window")
    assert [d.id for d in doors] == ["door-0", "door-1"]
    assert [w.id for w in windows] == ["window-0"]

    main, exit_door = doors
    assert main.dimensions.width == pytest.approx(1.2)
    assert main.rotation == pytest.approx(math.pi / 2)
    assert (main.position.x, main.position.z) == (2.5, 0)
    assert not main.is_fire_exit

    assert exit_door.is_fire_exit
    assert exit_door.dimensions.width == pytest.approx(1.8)
    assert windows[0].dimensions.width == pytest.approx(1.2)


def test_millimeter_drawing_is_scaled(tmp_path):
    doc = new_plan(units.MM)
    msp = doc.modelspace()
    msp.add_polyline2d(
        [(0, 0), (6000, 0), (6000, 3000), (0, 3000)], close=True, dxfattribs={"layer": "SPACE"}
    )
    door = msp.add_blockref("DOOR", (3000, 0), dxfattribs={"layer": "DOORS"})
    door.add_attrib("WIDTH", "900", (3000, 0))
    path = tmp_path / "mm.dxf"
    doc.saveas(path)

    snapshot = load_room_snapshot(path, "mm")

    coordinates = [c for p in snapshot.floor_polygon for c in (p.x, p.z)]
    assert coordinates == pytest.approx([0, 0, 6, 0, 6, 3, 0, 3])
    assert snapshot.constraints[0].dimensions.width == pytest.approx(0.9)


def test_closing_point_is_dropped(tmp_path):
    doc = new_plan()
    doc.modelspace().add_lwpolyline(
        [(0, 0), (3, 0), (3, 3), (0, 3), (0, 0)], dxfattribs={"layer": "ROOM"}
    )
    path = tmp_path / "open.dxf"
    doc.saveas(path)

    snapshot = load_room_snapshot(path, "room")

    assert len(snapshot.floor_polygon) == 4


def test_room_index_selects_the_room(tmp_path):
    doc = new_plan()
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (3, 0), (3, 3), (0, 3)], close=True, dxfattribs={"layer": "ROOM"})
    msp.add_lwpolyline([(10, 0), (12, 0), (12, 2), (10, 2)], close=True, dxfattribs={"layer": "ROOM"})
    path = tmp_path / "two.dxf"
    doc.saveas(path)

    second = load_room_snapshot(path, "second", room_index=1)
    assert second.floor_polygon[0].x == 10

    with pytest.raises(PlanImportError):
        load_room_snapshot(path, "third", room_index=2)


def test_drawing_without_rooms(tmp_path):
    doc = new_plan()
    doc.modelspace().add_lwpolyline([(0, 0), (3, 0), (3, 3)], close=True, dxfattribs={"layer": "WALLS"})
    path = tmp_path / "walls.dxf"
    doc.saveas(path)

    with pytest.raises(PlanImportError):
        load_room_snapshot(path, "room")


def test_unreadable_files(tmp_path):
    garbage = tmp_path / "garbage.dxf"
    garbage.write_text("this is not a drawing")

    with pytest.raises(PlanImportError):
        load_room_snapshot(garbage, "room")
    with pytest.raises(PlanImportError):
        read_document(tmp_path / "missing.dxf")


@pytest.mark.parametrize("code, factor", [(6, 1.0), (4, 0.001), (5, 0.01), (2, 0.3048), (0, 0.001)])
def test_unit_factor(code, factor):
    doc = ezdxf.new("R2010")
    doc.header["$INSUNITS"] = code

    assert unit_factor(doc) == pytest.approx(factor)


def test_room_layers():
    assert is_room_layer("A-ROOM")
    assert is_room_layer("space")
    assert not is_room_layer("DOOR-ROOM")
    assert not is_room_layer("FURNITURE")


def test_find_room_polygons_skips_open_outlines():
    doc = new_plan()
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (3, 0), (3, 3), (0, 3)], dxfattribs={"layer": "ROOM"})

    assert find_room_polygons(msp, 1.0) == []
