"""Human-readable floor dumps for debugging. Not authoritative: never parse this output."""
from __future__ import annotations

import logging
from typing import List

from .floor.map import FloorMap
from .floor.room import RoomType

logger = logging.getLogger(__name__)

_ARROWS = {"up": "^", "down": "v", "right": ">"}


def _cell_glyph(floor_map: FloorMap, x: int, y: int) -> str:
    room = floor_map.get_room(x, y)
    if room is None:
        return "[ ]"
    if room.type is RoomType.START:
        return "[S]"
    if room.type is RoomType.BOSS:
        return "[B]"
    if (x, y) == floor_map.current_position:
        return "[*]"
    if room.visited:
        return "[o]"
    return "[R]"


def dump_floor(floor_map: FloorMap) -> str:
    """Grid picture followed by the connection table (raster order)."""
    lines: List[str] = [
        f"Floor {floor_map.floor} - {floor_map.width}x{floor_map.height} (seed={floor_map.seed!r})",
        f"Start: {floor_map.start_position}  Boss: {floor_map.boss_position}  Current: {floor_map.current_position}",
        f"Rooms: {floor_map.get_total_rooms()}, Visited: {floor_map.get_visited_count()}",
        "",
    ]
    for y in range(floor_map.height):
        lines.append(" ".join(_cell_glyph(floor_map, x, y) for x in range(floor_map.width)))

    lines.append("")
    lines.append("Connections:")
    for room in floor_map.iter_rooms():
        arrows = [_ARROWS[d.value] for d in room.connected_directions()]
        template = room.template.key if room.template is not None else "-"
        enemies = ",".join(room.enemy_types) or "-"
        lines.append(
            f"  ({room.x}, {room.y}) {room.type.value:<6} {' '.join(arrows) or 'none':<6} "
            f"template={template} enemies={enemies}"
        )
    return "\n".join(lines)


def log_floor(floor_map: FloorMap, level: int = logging.DEBUG) -> None:
    if logger.isEnabledFor(level):
        logger.log(level, "\n%s", dump_floor(floor_map))
