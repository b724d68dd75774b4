from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from .floor.room import Position, RoomNode

if TYPE_CHECKING:
    from .floor.map import FloorMap

# Reveal probes include left: the minimap shows rooms behind the player even
# though the floor graph never connects leftwards.
_REVEAL_OFFSETS: Tuple[Position, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


class CellState(str, Enum):
    CURRENT = "current"
    VISITED = "visited"
    BOSS_VISITED = "boss_visited"
    REVEALED = "revealed"
    HIDDEN = "hidden"
    EMPTY = "empty"


@dataclass(frozen=True)
class MinimapCell:
    """Display state of one grid cell.

    ``room`` is only exposed for states the player is allowed to see
    (current, visited, revealed); hidden and empty cells carry None.
    """

    state: CellState
    position: Position
    room: Optional[RoomNode] = None


@dataclass(frozen=True)
class CellDescriptor:
    """Legend entry: how a cell state appears on the minimap."""

    state: CellState
    label: str
    glyph: str
    color: Tuple[int, int, int]


LEGEND: Dict[CellState, CellDescriptor] = {
    CellState.CURRENT: CellDescriptor(CellState.CURRENT, "You", "@", (255, 255, 100)),
    CellState.VISITED: CellDescriptor(CellState.VISITED, "Visited", "o", (80, 220, 100)),
    CellState.BOSS_VISITED: CellDescriptor(CellState.BOSS_VISITED, "Boss", "B", (255, 90, 90)),
    CellState.REVEALED: CellDescriptor(CellState.REVEALED, "Unexplored", "?", (120, 120, 140)),
    CellState.HIDDEN: CellDescriptor(CellState.HIDDEN, "Unknown", "-", (50, 50, 70)),
    CellState.EMPTY: CellDescriptor(CellState.EMPTY, "", " ", (30, 30, 45)),
}


def is_room_revealed(floor_map: "FloorMap", x: int, y: int) -> bool:
    """True if a room exists at (x, y) and any 4-neighbor (left included) is visited."""
    if floor_map.get_room(x, y) is None:
        return False
    for dx, dy in _REVEAL_OFFSETS:
        adj = floor_map.get_room(x + dx, y + dy)
        if adj is not None and adj.visited:
            return True
    return False


def _cell_for(floor_map: "FloorMap", x: int, y: int) -> MinimapCell:
    room = floor_map.get_room(x, y)
    pos = (x, y)
    if room is None:
        return MinimapCell(CellState.EMPTY, pos)
    if pos == floor_map.current_position:
        return MinimapCell(CellState.CURRENT, pos, room)
    if room.visited:
        state = CellState.BOSS_VISITED if room.is_boss_room else CellState.VISITED
        return MinimapCell(state, pos, room)
    if is_room_revealed(floor_map, x, y):
        return MinimapCell(CellState.REVEALED, pos, room)
    return MinimapCell(CellState.HIDDEN, pos)


def build_minimap(floor_map: "FloorMap") -> List[List[MinimapCell]]:
    """Project the floor into rows of display cells (``cells[y][x]``). Never mutates the map."""
    return [[_cell_for(floor_map, x, y) for x in range(floor_map.width)] for y in range(floor_map.height)]


def render_ascii(cells: Sequence[Sequence[MinimapCell]]) -> str:
    return "\n".join("".join(LEGEND[c.state].glyph for c in row) for row in cells)


def minimap_signature(cells: Sequence[Sequence[MinimapCell]]) -> str:
    """Stable digest of a projection, for comparing two peers' views byte for byte."""
    payload = [
        [[c.state.value, list(c.position), c.room.type.value if c.room is not None else None] for c in row]
        for row in cells
    ]
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return hashlib.blake2b(raw, digest_size=16).hexdigest()


class MinimapView:
    """Read-only consumer of a FloorMap; recomputes its projection on demand."""

    def __init__(self, floor_map: "FloorMap"):
        self.floor_map = floor_map

    def cells(self) -> List[List[MinimapCell]]:
        return build_minimap(self.floor_map)

    def render(self) -> str:
        return render_ascii(self.cells())

    def signature(self) -> str:
        return minimap_signature(self.cells())

    def counts(self) -> Dict[CellState, int]:
        out = {state: 0 for state in CellState}
        for row in self.cells():
            for c in row:
                out[c.state] += 1
        return out

    def legend(self) -> List[CellDescriptor]:
        """Legend entries for non-empty states, in display order."""
        return [d for s, d in LEGEND.items() if s is not CellState.EMPTY]


__all__ = [
    "CellState",
    "MinimapCell",
    "CellDescriptor",
    "LEGEND",
    "MinimapView",
    "build_minimap",
    "is_room_revealed",
    "minimap_signature",
    "render_ascii",
]
