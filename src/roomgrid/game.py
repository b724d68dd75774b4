from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, Optional

from .config import GenerationSettings
from .data import WeightTables
from .floor.map import FloorMap, generate_floor_map
from .rng import SeededRandom

logger = logging.getLogger(__name__)


def floor_to_dict(floor_map: FloorMap) -> Dict[str, Any]:
    """Serializable view of a generated floor, rooms in raster order."""
    rooms = []
    for room in floor_map.iter_rooms():
        rooms.append(
            {
                "x": room.x,
                "y": room.y,
                "type": room.type.value,
                "connections": room.connections.as_dict(),
                "template": room.template.key if room.template is not None else None,
                "enemy_types": list(room.enemy_types),
            }
        )
    return {
        "floor": floor_map.floor,
        "width": floor_map.width,
        "height": floor_map.height,
        "start": list(floor_map.start_position),
        "boss": list(floor_map.boss_position),
        "rooms": rooms,
    }


def floor_signature(floor_map: FloorMap) -> str:
    """Deterministic digest of rooms, connections and content; equal across agreeing peers."""
    raw = json.dumps(floor_to_dict(floor_map), sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.blake2b(raw, digest_size=16).hexdigest()


def generate_floor(
    settings: GenerationSettings,
    floor: Optional[int] = None,
    tables: Optional[WeightTables] = None,
) -> Dict[str, Any]:
    """High-level API: build a floor from settings and return a JSON-serializable summary."""
    floor = floor if floor is not None else settings.floor
    if settings.seed is None:
        logger.warning("No seed configured; floor %d will not be reproducible", floor)
        rng = None
    else:
        rng = SeededRandom(settings.seed)
    floor_map = generate_floor_map(floor, rng, settings=settings, tables=tables)
    result = floor_to_dict(floor_map)
    result["seed"] = settings.seed
    result["signature"] = floor_signature(floor_map)
    return result
