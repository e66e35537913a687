"""
Settings for the room planner.

Values come from the optional ``ROOMPLANNER`` dict in Django settings. The
services are also used outside a configured Django project (scripts, tests),
in which case the defaults below apply.
"""

from django.conf import settings


DEFAULTS = {
    # Buffer (m) removed along the perimeter when estimating usable area.
    "WALL_BUFFER": 0.5,
    "DEFAULT_GRID_RESOLUTION": 0.2,
    # Coarser grids (m) also packed under "maximize"; the densest packing wins.
    "GRID_RESOLUTION_LADDER": (0.15, 0.2, 0.25, 0.3, 0.4, 0.5, 0.6, 0.75, 1.0),
    # Edge length (m) of the square cells used for placement zones.
    "ZONE_SIZE": 1.5,
    # Width (m) reported for an accessibility path with no obstruction.
    "PATH_NOMINAL_WIDTH": 1.5,
    # Office occupancy factor, m² per person.
    "OCCUPANT_LOAD_FACTOR": 9.3,
    "DXF_ROOM_LAYERS": ("ROOM", "SPACE", "AREA"),
    # Finished workflow results kept per orchestrator.
    "WORKFLOW_HISTORY_LIMIT": 100,
}


def get_setting(name: str):
    """Return a planner setting, preferring the Django project's override."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown room planner setting: {name}")
    if not settings.configured:
        return DEFAULTS[name]
    overrides = getattr(settings, "ROOMPLANNER", None) or {}
    return overrides.get(name, DEFAULTS[name])
