from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import GenerationSettings
from .data import WeightTables, default_tables, load_weight_tables
from .errors import ProvisionalMapError
from .floor.map import FloorMap, generate_floor_map
from .rng import EntropyRandom, Seed, SeededRandom, seed_from_string
from .selection import select_room_template

logger = logging.getLogger(__name__)

DAILY_SEED_SUFFIX = "roomgrid-daily"


def today_date_string() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def daily_seed(date: Optional[str] = None) -> int:
    """Seed shared by everyone playing the daily run for ``date`` (YYYY-MM-DD, UTC today by default)."""
    return seed_from_string((date or today_date_string()) + DAILY_SEED_SUFFIX)


@dataclass(frozen=True)
class SeedAnnouncement:
    """Everything an authority distributes before a floor is generated.

    Only the seed and choices made before the deterministic stream starts
    travel between peers; the floor itself is recomputed locally.
    """

    seed: Seed
    floor: int
    first_template_key: Optional[str] = None

    @classmethod
    def create(
        cls,
        floor: int,
        seed: Optional[Seed] = None,
        tables: Optional[WeightTables] = None,
        pick_first_template: bool = True,
    ) -> "SeedAnnouncement":
        """Authority side: pick a seed (random if None) and the one-shot start template."""
        if seed is None:
            seed = secrets.randbits(32)
        first_template_key = None
        if pick_first_template:
            first_template_key = select_room_template(floor, EntropyRandom(), tables or default_tables()).key
        logger.info("Announcing floor %d seed=%r first_template=%s", floor, seed, first_template_key)
        return cls(seed=seed, floor=floor, first_template_key=first_template_key)

    def to_dict(self) -> Dict[str, Any]:
        return {"seed": self.seed, "floor": self.floor, "first_template_key": self.first_template_key}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeedAnnouncement":
        try:
            seed = data["seed"]
            floor = int(data["floor"])
        except KeyError as e:
            raise ValueError(f"Seed announcement missing field: {e.args[0]}") from e
        if seed is None or seed == "" or isinstance(seed, bool):
            raise ValueError(f"Seed announcement has an invalid seed: {seed!r}")
        return cls(seed=seed, floor=floor, first_template_key=data.get("first_template_key"))


class FloorSession:
    """One peer's ownership of the active floor.

    A peer that runs ahead of the authority may build a provisional floor
    from local entropy. It must not commit gameplay effects against it and
    it is thrown away as soon as the authoritative announcement arrives.
    """

    def __init__(
        self,
        settings: Optional[GenerationSettings] = None,
        tables: Optional[WeightTables] = None,
    ) -> None:
        self.settings = settings or GenerationSettings()
        if tables is None:
            tables = load_weight_tables(self.settings.tables_path) if self.settings.tables_path else default_tables()
        self.tables = tables
        self.floor_map: Optional[FloorMap] = None
        self.announcement: Optional[SeedAnnouncement] = None
        self.is_provisional = False

    def start_provisional(self, floor: int) -> FloorMap:
        logger.info("Building provisional floor %d while waiting for the authoritative seed", floor)
        self.floor_map = generate_floor_map(
            floor, EntropyRandom(), settings=self.settings.replace(floor=floor), tables=self.tables
        )
        self.announcement = None
        self.is_provisional = True
        return self.floor_map

    def apply_announcement(self, announcement: SeedAnnouncement) -> FloorMap:
        """Regenerate from the authoritative seed, discarding any provisional or stale floor."""
        if (
            self.floor_map is not None
            and not self.is_provisional
            and self.announcement == announcement
        ):
            return self.floor_map
        if self.is_provisional:
            logger.info("Discarding provisional floor %d", self.floor_map.floor if self.floor_map else -1)
        self.floor_map = generate_floor_map(
            announcement.floor,
            SeededRandom(announcement.seed),
            settings=self.settings.replace(floor=announcement.floor, seed=announcement.seed),
            tables=self.tables,
            first_template_key=announcement.first_template_key,
        )
        self.announcement = announcement
        self.is_provisional = False
        logger.info("Floor %d generated from seed=%r", announcement.floor, announcement.seed)
        return self.floor_map

    def require_authoritative(self) -> FloorMap:
        """Return the floor for gameplay that cannot be undone; refuses provisional floors."""
        if self.floor_map is None:
            raise ProvisionalMapError("No floor has been generated yet")
        if self.is_provisional:
            raise ProvisionalMapError("Floor is provisional; wait for the authoritative seed")
        return self.floor_map
