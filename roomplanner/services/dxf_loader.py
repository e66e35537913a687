"""
Room import from DXF drawings.

Drawing conventions:

- Rooms: closed ``LWPOLYLINE`` / ``POLYLINE`` entities on a room layer
  (layer name containing one of ``DXF_ROOM_LAYERS``)
- Doors: ``INSERT`` entities on a DOOR layer or with a door block name
- Windows: ``INSERT`` entities on a WINDOW layer or with a window block name

Drawing (x, y) becomes floor (x, z); lengths are converted to meters using
the ``$INSUNITS`` header variable.
"""

from pathlib import Path
from typing import Union
import logging
import math

import ezdxf
from ezdxf import recover
from ezdxf.lldxf.const import DXFError
from shapely.geometry import Point, Polygon

from ..conf import get_setting
from .errors import PlanImportError
from .geometry import PlanPoint, Point3D
from .scene import Dimensions, MeshSnapshot, RoomConstraint


logger = logging.getLogger(__name__)

# $INSUNITS code -> meters per drawing unit
UNIT_FACTORS = {
    1: 0.0254,  # inches
    2: 0.3048,  # feet
    4: 0.001,  # millimeters
    5: 0.01,  # centimeters
    6: 1.0,  # meters
    14: 0.1,  # decimeters
}
# Unitless drawings are assumed to be in millimeters, like most plans.
UNITLESS_FACTOR = 0.001

NON_ROOM_KEYWORDS = ("DOOR", "WINDOW", "WALL", "GRID", "COLUMN", "STAIR", "DIM", "TEXT")
DOOR_KEYWORDS = ("DOOR",)
WINDOW_KEYWORDS = ("WINDOW",)
EXIT_KEYWORDS = ("EXIT", "EGRESS")
WIDTH_TAGS = ("WIDTH", "W")

DEFAULT_DOOR = Dimensions(0.9, 2.1, 0.1)
DEFAULT_WINDOW = Dimensions(1.2, 1.2, 0.1)
# Openings further than this from the room outline belong to another room.
OPENING_TOLERANCE = 0.5


def read_document(path: Union[str, Path]):
    """Open a DXF file, falling back to ezdxf's recover mode on structure errors."""
    try:
        return ezdxf.readfile(str(path))
    except DXFError:
        logger.warning("Invalid DXF structure in %s, trying recover mode", path)
        try:
            doc, auditor = recover.readfile(str(path))
        except DXFError as exc:
            raise PlanImportError(f"Unrecoverable DXF structure in {path}") from exc
        if auditor.has_errors:
            logger.warning("Recovered %s with %d errors", path, len(auditor.errors))
        return doc
    except OSError as exc:
        raise PlanImportError(f"Cannot read DXF file {path}: {exc}") from exc


def unit_factor(doc) -> float:
    code = doc.header.get("$INSUNITS", 0)
    if code == 0:
        return UNITLESS_FACTOR
    factor = UNIT_FACTORS.get(code)
    if factor is None:
        logger.warning("Unsupported $INSUNITS %s, assuming millimeters", code)
        return UNITLESS_FACTOR
    return factor


def _matches(name: str, keywords) -> bool:
    name = name.upper()
    return any(keyword in name for keyword in keywords)


def is_room_layer(layer_name: str) -> bool:
    if _matches(layer_name, NON_ROOM_KEYWORDS):
        return False
    return _matches(layer_name, get_setting("DXF_ROOM_LAYERS"))


def _polyline_points(entity) -> list[tuple[float, float]]:
    if entity.dxftype() == "LWPOLYLINE":
        return [(x, y) for x, y in entity.get_points("xy")]
    return [(p.x, p.y) for p in entity.points()]


def _is_closed(entity, points) -> bool:
    if entity.dxftype() == "LWPOLYLINE":
        closed = entity.closed
    else:
        closed = entity.is_closed
    if closed:
        return True
    return len(points) > 3 and math.dist(points[0], points[-1]) < 1e-6


def find_room_polygons(msp, factor: float) -> list[tuple[PlanPoint, ...]]:
    """Closed room outlines in drawing order, converted to meters."""
    rooms = []
    for entity in msp.query("LWPOLYLINE POLYLINE"):
        if not is_room_layer(entity.dxf.layer):
            continue
        try:
            points = _polyline_points(entity)
        except (AttributeError, ValueError) as exc:
            logger.warning("Skipping unreadable polyline %s: %s", entity.dxf.handle, exc)
            continue
        if len(points) < 3 or not _is_closed(entity, points):
            continue
        if math.dist(points[0], points[-1]) < 1e-6:
            points = points[:-1]
        if len(points) < 3:
            continue
        rooms.append(tuple(PlanPoint(x * factor, y * factor) for x, y in points))
    return rooms


def _opening_width(insert, factor: float, default: float) -> float:
    for attrib in insert.attribs:
        if attrib.dxf.tag.upper() in WIDTH_TAGS:
            try:
                return float(attrib.dxf.text) * factor
            except ValueError:
                logger.warning("Ignoring non-numeric %s attribute on %s", attrib.dxf.tag, insert.dxf.name)
    xscale = insert.dxf.get("xscale", 1.0)
    return default * abs(xscale)


def find_openings(msp, factor: float) -> list[RoomConstraint]:
    """Door and window constraints from block references."""
    openings = []
    counts = {"door": 0, "window": 0}
    for insert in msp.query("INSERT"):
        layer = insert.dxf.layer
        name = insert.dxf.name
        if _matches(layer, DOOR_KEYWORDS) or _matches(name, DOOR_KEYWORDS):
            kind, default = "door", DEFAULT_DOOR
        elif _matches(layer, WINDOW_KEYWORDS) or _matches(name, WINDOW_KEYWORDS):
            kind, default = "window", DEFAULT_WINDOW
        else:
            continue

        point = insert.dxf.insert
        width = _opening_width(insert, factor, default.width)
        openings.append(RoomConstraint(
            id=f"{kind}-{counts[kind]}",
            type=kind,
            position=Point3D.on_floor(point.x * factor, point.y * factor),
            dimensions=Dimensions(width, default.height, default.depth),
            rotation=math.radians(insert.dxf.get("rotation", 0.0)),
            is_fire_exit=kind == "door" and (
                _matches(layer, EXIT_KEYWORDS) or _matches(name, EXIT_KEYWORDS)
            ),
        ))
        counts[kind] += 1
    return openings


def load_room_snapshot(
    path: Union[str, Path],
    room_id: str,
    room_index: int = 0,
) -> MeshSnapshot:
    """
    Build a ``MeshSnapshot`` for one room of a DXF plan.

    Only doors and windows lying on (or within 0.5 m of) the room outline
    are attached to the room.

    Raises:
        PlanImportError: the file cannot be read or has no such room.
    """
    doc = read_document(path)
    msp = doc.modelspace()
    factor = unit_factor(doc)

    rooms = find_room_polygons(msp, factor)
    if not rooms:
        raise PlanImportError(f"No closed room outline found in {path}")
    if room_index >= len(rooms):
        raise PlanImportError(
            f"Room {room_index} requested but {path} has {len(rooms)} rooms"
        )

    polygon = rooms[room_index]
    outline = Polygon(polygon).exterior
    constraints = tuple(
        c for c in find_openings(msp, factor)
        if outline.distance(Point(c.position.x, c.position.z)) <= OPENING_TOLERANCE
    )

    xs = [p.x for p in polygon]
    zs = [p.z for p in polygon]
    logger.info(
        "Imported room %s from %s: %d vertices, %d openings",
        room_id, path, len(polygon), len(constraints),
    )

    return MeshSnapshot(
        id=room_id,
        floor_polygon=polygon,
        constraints=constraints,
        bounding_box=(
            Point3D.on_floor(min(xs), min(zs)),
            Point3D.on_floor(max(xs), max(zs)),
        ),
    )
