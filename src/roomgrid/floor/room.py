from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..data import RoomTemplate
from ..errors import RoomGridError

Position = Tuple[int, int]


class RoomType(str, Enum):
    START = "start"
    COMBAT = "combat"
    BOSS = "boss"


class Direction(str, Enum):
    """Traversable directions. There is no LEFT: floors never allow backtracking."""

    UP = "up"
    DOWN = "down"
    RIGHT = "right"

    @property
    def offset(self) -> Position:
        return _OFFSETS[self]

    @classmethod
    def parse(cls, value: "Direction | str") -> Optional["Direction"]:
        """Return the Direction for ``value`` or None if it is not traversable."""
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


_OFFSETS: Dict[Direction, Position] = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.RIGHT: (1, 0),
}

# Fixed probe order for exits, validation and diagnostics.
DIRECTIONS: Tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.RIGHT)


@dataclass
class Connections:
    up: bool = False
    down: bool = False
    right: bool = False

    def has(self, direction: Direction) -> bool:
        return getattr(self, direction.value)

    def set(self, direction: Direction, value: bool) -> None:
        setattr(self, direction.value, bool(value))

    def as_dict(self) -> Dict[str, bool]:
        return {"up": self.up, "down": self.down, "right": self.right}


@dataclass(frozen=True)
class RoomContent:
    template: Optional[RoomTemplate] = None
    enemy_types: Tuple[str, ...] = ()


@dataclass
class RoomNode:
    """One cell of the floor graph."""

    x: int
    y: int
    type: RoomType = RoomType.COMBAT
    connections: Connections = field(default_factory=Connections)
    visited: bool = False
    cleared: bool = False
    _content: Optional[RoomContent] = field(default=None, repr=False)

    def __setattr__(self, name: str, value) -> None:
        if name in ("x", "y") and name in self.__dict__:
            raise AttributeError("Room position is immutable")
        super().__setattr__(name, value)

    @property
    def position(self) -> Position:
        return (self.x, self.y)

    @property
    def key(self) -> str:
        return f"{self.x},{self.y}"

    @property
    def is_boss_room(self) -> bool:
        return self.type is RoomType.BOSS

    @property
    def content(self) -> RoomContent:
        return self._content or RoomContent()

    @property
    def template(self) -> Optional[RoomTemplate]:
        return self.content.template

    @property
    def enemy_types(self) -> Tuple[str, ...]:
        return self.content.enemy_types

    def assign_content(self, template: Optional[RoomTemplate], enemy_types: List[str] | Tuple[str, ...] = ()) -> None:
        if self._content is not None:
            raise RoomGridError(f"Room {self.key} already has content assigned")
        self._content = RoomContent(template=template, enemy_types=tuple(enemy_types))

    def adjacent_position(self, direction: Direction) -> Position:
        dx, dy = direction.offset
        return (self.x + dx, self.y + dy)

    def connected_directions(self) -> List[Direction]:
        return [d for d in DIRECTIONS if self.connections.has(d)]
