"""
PNG previews of room layouts.

Draws the floor polygon, the footprints of existing furniture, proposed
placements with their access zones and the room's doors and windows on a
bare matplotlib ``Figure`` (no pyplot state, safe inside a web worker).
"""

from pathlib import Path
from typing import BinaryIO, Iterable, Union
import logging

from matplotlib.figure import Figure
from matplotlib.patches import Circle, Polygon as PolygonPatch, Rectangle

from .furniture_catalog import footprint_bounds
from .geometry import RoomBounds
from .scene import RoomConstraint, SceneObject, furniture_only
from .space_optimizer import PlacementLayout


logger = logging.getLogger(__name__)

ROOM_COLOR = "#0f172a"
FURNITURE_COLOR = "#94a3b8"
PLACEMENT_COLOR = "#10b981"
ACCESS_ZONE_COLOR = "#3b82f6"
OPENING_COLORS = {"door": "#f97316", "window": "#0ea5e9"}


def render_layout_preview(
    room: RoomBounds,
    layouts: Iterable[PlacementLayout],
    scene_objects: Iterable[SceneObject],
    out: Union[str, Path, BinaryIO],
    constraints: Iterable[RoomConstraint] = (),
    title: str = "",
) -> None:
    """
    Render a layout to PNG.

    ``out`` is a file path or a writable binary buffer.
    """
    layouts = list(layouts)
    fig = Figure(figsize=(8.0, 6.0))
    ax = fig.add_subplot(111)

    ax.add_patch(PolygonPatch(
        [(p.x, p.z) for p in room.floor_polygon],
        closed=True,
        fill=False,
        edgecolor=ROOM_COLOR,
        linewidth=2.0,
        zorder=2,
    ))

    for obj in furniture_only(list(scene_objects)):
        min_x, min_z, max_x, max_z = footprint_bounds(obj)
        ax.add_patch(Rectangle(
            (min_x, min_z),
            max_x - min_x,
            max_z - min_z,
            facecolor=FURNITURE_COLOR,
            edgecolor=ROOM_COLOR,
            linewidth=0.8,
            alpha=0.8,
            zorder=3,
        ))
        ax.text(obj.position.x, obj.position.z, obj.type, fontsize=7, ha="center", va="center", zorder=4)

    for layout in layouts:
        for zone in layout.access_zones:
            ax.add_patch(Circle(
                (zone.center.x, zone.center.z),
                zone.radius,
                facecolor=ACCESS_ZONE_COLOR,
                edgecolor="none",
                alpha=0.15,
                zorder=1,
            ))

    if layouts:
        ax.scatter(
            [layout.position.x for layout in layouts],
            [layout.position.z for layout in layouts],
            s=48,
            color=PLACEMENT_COLOR,
            marker="o",
            zorder=5,
            linewidths=1.0,
            edgecolors=ROOM_COLOR,
        )

    for constraint in constraints:
        color = OPENING_COLORS.get(constraint.type)
        if color is None:
            continue
        ax.scatter(
            [constraint.position.x],
            [constraint.position.z],
            s=72,
            color=color,
            marker="s",
            zorder=6,
        )

    min_x, min_z, max_x, max_z = room.get_bounds()
    pad = max(max_x - min_x, max_z - min_z) * 0.05 + 0.2
    ax.set_xlim(min_x - pad, max_x + pad)
    ax.set_ylim(min_z - pad, max_z + pad)
    ax.set_aspect("equal", adjustable="datalim")
    ax.axis("off")
    if title:
        ax.set_title(title, fontsize=11, weight="bold")

    if isinstance(out, (str, Path)):
        out = Path(out)
        out.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(str(out), format="png", dpi=150, bbox_inches="tight", facecolor="#ffffff")
    else:
        fig.savefig(out, format="png", dpi=150, bbox_inches="tight", facecolor="#ffffff")

    logger.info("Rendered layout preview with %d placements", len(layouts))
