from __future__ import annotations

from collections import deque
from typing import Callable, Optional, Set

from .room import DIRECTIONS, Position, RoomNode

RoomLookup = Callable[[int, int], Optional[RoomNode]]


def reachable_positions(get_room: RoomLookup, start: Position) -> Set[Position]:
    """Breadth-first search over declared up/down/right connections.

    Returns every position reachable from ``start``, including ``start``.
    """
    if get_room(*start) is None:
        return set()
    seen = {start}
    q = deque([start])
    while q:
        x, y = q.popleft()
        room = get_room(x, y)
        if room is None:
            continue
        for d in DIRECTIONS:
            if not room.connections.has(d):
                continue
            nxt = room.adjacent_position(d)
            if nxt not in seen and get_room(*nxt) is not None:
                seen.add(nxt)
                q.append(nxt)
    return seen


def find_path_bfs(get_room: RoomLookup, start: Position, goal: Position) -> Optional[int]:
    """Shortest path length in steps from start to goal, or None if unreachable."""
    if get_room(*start) is None or get_room(*goal) is None:
        return None
    q = deque([(start, 0)])
    seen = {start}
    while q:
        pos, dist = q.popleft()
        if pos == goal:
            return dist
        room = get_room(*pos)
        if room is None:
            continue
        for d in DIRECTIONS:
            if not room.connections.has(d):
                continue
            nxt = room.adjacent_position(d)
            if nxt not in seen and get_room(*nxt) is not None:
                seen.add(nxt)
                q.append((nxt, dist + 1))
    return None
