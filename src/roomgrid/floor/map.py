from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from ..config import GenerationSettings
from ..data import WeightTables, default_tables, load_weight_tables
from ..errors import ConfigError, ConstructionInvariantViolation
from ..rng import EntropyRandom, RandomSource, Seed, SeededRandom, create_seed, normalize_seed
from ..selection import select_enemy_type, select_room_template
from .pathfinding import reachable_positions
from .room import DIRECTIONS, Direction, Position, RoomNode, RoomType

if TYPE_CHECKING:
    from ..minimap import MinimapCell

logger = logging.getLogger(__name__)


class Exit(NamedTuple):
    direction: Direction
    position: Position
    room: RoomNode


def grid_size_for_floor(floor: int, settings: Optional[GenerationSettings] = None) -> Tuple[int, int]:
    """Grid extent for a floor: wider and taller as floors go up, clamped to the caps.

    Floor 1 is 4x2, floor 2 is 5x3, floor 3 is 6x3, floor 4 is 7x4, ...
    """
    if floor < 1:
        raise ConfigError(f"floor must be >= 1, got {floor}")
    settings = settings or GenerationSettings()
    width = min(3 + floor, settings.max_width)
    height = min(2 + floor // 2, settings.max_height)
    return width, height


class FloorMap:
    """Grid of rooms for one floor, generated on construction.

    Layout: start room at column 0 (middle row), boss room in the last
    column, a guaranteed path between them and optional branch rooms. Rooms
    only connect up, down and right, so the player can never backtrack.

    Every random decision goes through ``rng`` in a fixed order. Peers that
    build a FloorMap from the same seed, floor, tables and settings get
    identical rooms, connections, templates and enemy pools without
    exchanging anything but the seed.
    """

    def __init__(
        self,
        floor: int,
        width: int = 6,
        height: int = 3,
        rng: Optional[RandomSource] = None,
        *,
        tables: Optional[WeightTables] = None,
        settings: Optional[GenerationSettings] = None,
        first_template_key: Optional[str] = None,
    ) -> None:
        if floor < 1:
            raise ConfigError(f"floor must be >= 1, got {floor}")
        if width < 2 or height < 1:
            raise ConfigError(f"FloorMap needs width >= 2 and height >= 1, got {width}x{height}")
        self.floor = floor
        self.width = width
        self.height = height
        self.settings = settings or GenerationSettings(floor=floor)
        self.settings.validate()
        self.tables = tables or default_tables()
        self.first_template_key = first_template_key
        if rng is None:
            logger.debug("FloorMap floor=%d using non-deterministic entropy", floor)
            rng = EntropyRandom()
        self.rng = rng

        self.grid: List[List[Optional[RoomNode]]] = []
        self.rooms: Dict[str, RoomNode] = {}
        self.start_position: Position = (0, 0)
        self.boss_position: Position = (0, 0)
        self.current_position: Position = (0, 0)
        self.visited_rooms: Set[str] = set()
        self.is_valid = False

        self.generate()

    @property
    def seed(self) -> Optional[Seed]:
        return getattr(self.rng, "seed", None)

    # ------------------------ Generation ------------------------
    def generate(self) -> None:
        """Build the floor. Call order on ``self.rng`` is part of the replication contract."""
        self.grid = [[None for _ in range(self.width)] for _ in range(self.height)]
        self.rooms = {}
        self.visited_rooms = set()

        mid_row = self.height // 2
        self.start_position = (0, mid_row)
        boss_row = 0 if self.height == 1 else self.rng.range(0, self.height)
        self.boss_position = (self.width - 1, boss_row)
        logger.debug(
            "Generating floor %d (%dx%d): start=%s boss=%s",
            self.floor,
            self.width,
            self.height,
            self.start_position,
            self.boss_position,
        )

        self._set_room(RoomNode(0, mid_row, RoomType.START))
        self._set_room(RoomNode(self.width - 1, boss_row, RoomType.BOSS))

        self._generate_main_path()
        self._add_branch_rooms()
        self._establish_connections()
        self._assign_room_content()

        self.is_valid = self.validate()
        if not self.is_valid:
            message = f"Boss at {self.boss_position} unreachable from start {self.start_position} on floor {self.floor}"
            logger.error("Construction invariant violated: %s (seed=%r)", message, self.seed)
            if self.settings.on_invalid != "log":
                raise ConstructionInvariantViolation(message, floor=self.floor, seed=self.seed)

        self.current_position = self.start_position
        self.mark_room_visited(*self.start_position)

    def _generate_main_path(self) -> None:
        for x, y in self._find_path(self.start_position, self.boss_position):
            if self.get_room(x, y) is None:
                self._set_room(RoomNode(x, y, RoomType.COMBAT))

    def _find_path(self, start: Position, end: Position) -> List[Position]:
        """Greedy walk that only moves right, up or down.

        Prefers stepping right; while the row still differs from the target
        row a ``path_vertical_chance`` draw may step toward it instead. Once
        in the target column it moves vertically.
        """
        path: List[Position] = []
        cx, cy = start
        ex, ey = end
        while cx < ex or cy != ey:
            path.append((cx, cy))
            if cx < ex:
                if cy != ey and self.rng.next() < self.settings.path_vertical_chance:
                    cy += 1 if cy < ey else -1
                else:
                    cx += 1
            else:
                cy += 1 if cy < ey else -1
        path.append(end)
        return path

    def _add_branch_rooms(self) -> None:
        """Scan interior columns in raster order and attach branches to left neighbors."""
        max_branches = math.floor((self.width * self.height) * self.settings.branch_fraction)
        added = 0
        for x in range(1, self.width - 1):
            for y in range(self.height):
                if added >= max_branches:
                    break
                if self.get_room(x, y) is not None:
                    continue
                if self.get_room(x - 1, y) is not None and self.rng.next() < self.settings.branch_chance:
                    self._set_room(RoomNode(x, y, RoomType.COMBAT))
                    added += 1
        logger.debug("Added %d branch rooms (cap %d)", added, max_branches)

    def _establish_connections(self) -> None:
        for room in self.iter_rooms():
            for d in DIRECTIONS:
                room.connections.set(d, self.get_room(*room.adjacent_position(d)) is not None)

    def _assign_room_content(self) -> None:
        """Templates and enemy pools, in raster order.

        For each room the template draw comes before its enemy draws. The
        boss room gets neither; a pre-seed ``first_template_key`` fills the
        start room without touching the stream.
        """
        lo = self.settings.min_enemy_types
        hi = self.settings.max_enemy_types
        for room in self.iter_rooms():
            template = None
            if room.type is RoomType.START and self.first_template_key is not None:
                template = self.tables.template(self.first_template_key)
            elif room.type is not RoomType.BOSS:
                template = select_room_template(self.floor, self.rng, self.tables)

            enemy_types: List[str] = []
            if room.type is RoomType.COMBAT:
                count = self.rng.range(lo, hi + 1)
                enemy_types = [select_enemy_type(self.floor, self.rng, self.tables) for _ in range(count)]
            room.assign_content(template, enemy_types)

    def validate(self) -> bool:
        """True if the boss room is reachable from start over declared connections."""
        reachable = reachable_positions(self.get_room, self.start_position)
        if self.boss_position in reachable:
            logger.debug("Validation passed: boss is reachable (%d rooms reachable)", len(reachable))
            return True
        return False

    # ------------------------ Grid access ------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_room(self, x: int, y: int) -> Optional[RoomNode]:
        if not self.in_bounds(x, y):
            return None
        return self.grid[y][x]

    def _set_room(self, room: RoomNode) -> None:
        if not self.in_bounds(room.x, room.y):
            return
        self.grid[room.y][room.x] = room
        self.rooms[room.key] = room

    def iter_rooms(self) -> Iterator[RoomNode]:
        """Rooms in raster order: x outer, y inner."""
        for x in range(self.width):
            for y in range(self.height):
                room = self.grid[y][x]
                if room is not None:
                    yield room

    # ------------------------ Navigation ------------------------
    def get_current_room(self) -> Optional[RoomNode]:
        return self.get_room(*self.current_position)

    def get_available_exits(self) -> List[Exit]:
        """Connected neighbors of the current room that have not been visited yet.

        A connection into a visited room stays in the graph but is not offered
        as an exit.
        """
        room = self.get_current_room()
        if room is None:
            return []
        exits: List[Exit] = []
        for d in DIRECTIONS:
            if not room.connections.has(d):
                continue
            pos = room.adjacent_position(d)
            nxt = self.get_room(*pos)
            if nxt is not None and not nxt.visited:
                exits.append(Exit(d, pos, nxt))
        return exits

    def move_to_room(self, direction: Direction | str) -> bool:
        """Move the cursor one room. Returns False and changes nothing if the move is not allowed."""
        current = self.get_current_room()
        d = Direction.parse(direction)
        if current is None or d is None or not current.connections.has(d):
            logger.warning("Cannot move %s from %s", direction, self.current_position)
            return False

        pos = current.adjacent_position(d)
        nxt = self.get_room(*pos)
        if nxt is None:
            logger.warning("No room found at %s", pos)
            return False

        self.current_position = pos
        self.mark_room_visited(*pos)
        logger.debug("Moved %s to room %s", d.value, pos)
        return True

    def mark_room_visited(self, x: int, y: int) -> None:
        room = self.get_room(x, y)
        if room is not None:
            room.visited = True
            self.visited_rooms.add(room.key)

    def mark_room_cleared(self, x: int, y: int) -> None:
        room = self.get_room(x, y)
        if room is not None:
            room.cleared = True

    def is_floor_cleared(self) -> bool:
        boss = self.get_room(*self.boss_position)
        return boss is not None and boss.cleared

    # ------------------------ Queries ------------------------
    def get_total_rooms(self) -> int:
        return len(self.rooms)

    def get_visited_count(self) -> int:
        return len(self.visited_rooms)

    def connection_table(self) -> Dict[str, Dict[str, bool]]:
        return {room.key: room.connections.as_dict() for room in self.iter_rooms()}

    def get_grid_for_minimap(self) -> List[List["MinimapCell"]]:
        from ..minimap import build_minimap

        return build_minimap(self)

    def __repr__(self) -> str:
        return f"FloorMap(floor={self.floor}, {self.width}x{self.height}, rooms={self.get_total_rooms()})"


def generate_floor_map(
    floor: int,
    rng: Optional[RandomSource] = None,
    *,
    seed: Optional[Seed] = None,
    settings: Optional[GenerationSettings] = None,
    tables: Optional[WeightTables] = None,
    first_template_key: Optional[str] = None,
) -> FloorMap:
    """Size the grid for ``floor`` and build a FloorMap.

    Pass either a ready ``rng`` or a ``seed``; with neither, generation uses
    non-deterministic entropy (single-peer only). With
    ``on_invalid="regenerate"`` a failed validation retries with a seed
    derived from the original one, so peers still agree on the retry.
    Passing both ``rng`` and ``seed`` raises ConfigError.
    """
    if rng is not None and seed is not None:
        raise ConfigError("Pass either rng or seed, not both")
    settings = settings or GenerationSettings(floor=floor)
    settings.validate()
    if tables is None:
        tables = load_weight_tables(settings.tables_path) if settings.tables_path else default_tables()
    if rng is None and seed is not None:
        rng = SeededRandom(seed)
    width, height = grid_size_for_floor(floor, settings)

    if settings.on_invalid != "regenerate":
        return FloorMap(
            floor, width, height, rng, tables=tables, settings=settings, first_template_key=first_template_key
        )

    strict = settings.replace(on_invalid="raise")
    base_seed = seed if seed is not None else getattr(rng, "seed", None)
    attempt = 0
    while True:
        try:
            return FloorMap(
                floor, width, height, rng, tables=tables, settings=strict, first_template_key=first_template_key
            )
        except ConstructionInvariantViolation:
            attempt += 1
            if attempt >= settings.max_regenerate_attempts:
                raise
            if base_seed is not None:
                retry_seed = create_seed(normalize_seed(base_seed), attempt)
                rng = SeededRandom(retry_seed)
            else:
                rng = EntropyRandom()
            logger.warning("Regenerating floor %d (attempt %d) with seed=%r", floor, attempt + 1, getattr(rng, "seed", None))
