from .map import Exit, FloorMap, generate_floor_map, grid_size_for_floor
from .pathfinding import find_path_bfs, reachable_positions
from .room import DIRECTIONS, Connections, Direction, RoomContent, RoomNode, RoomType

__all__ = [
    "DIRECTIONS",
    "Connections",
    "Direction",
    "Exit",
    "FloorMap",
    "RoomContent",
    "RoomNode",
    "RoomType",
    "find_path_bfs",
    "generate_floor_map",
    "grid_size_for_floor",
    "reachable_positions",
]
