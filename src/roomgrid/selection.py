from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from .data import RoomTemplate, WeightTables, default_tables
from .errors import WeightTableError
from .rng import EntropyRandom, RandomSource

logger = logging.getLogger(__name__)


def weighted_choice(weights: Mapping[str, float], rng: Optional[RandomSource] = None) -> str:
    """Select a label from an ordered mapping of non-negative weights.

    Consumes exactly one ``rng.next()`` draw. Labels are walked in mapping
    order and the first whose cumulative weight reaches the draw wins, so
    peers must share the mapping order as well as the values. Zero-weight
    labels are never returned.
    """
    if not weights:
        raise WeightTableError("weighted_choice requires a non-empty weights mapping")

    labels: List[str] = []
    cumulative: List[float] = []
    total = 0.0
    for label, w in weights.items():
        if w < 0:
            raise WeightTableError(f"Weight for {label!r} must be non-negative, got {w}")
        if w == 0:
            continue
        total += w
        labels.append(label)
        cumulative.append(total)

    if total == 0:
        raise WeightTableError("All weights are zero; cannot make a weighted choice")

    source = rng if rng is not None else EntropyRandom()
    r = source.next() * total
    for i, c in enumerate(cumulative):
        if r <= c:
            return labels[i]
    # Float rounding only
    return labels[-1]


def select_room_template(
    floor: int,
    rng: Optional[RandomSource] = None,
    tables: Optional[WeightTables] = None,
) -> RoomTemplate:
    tables = tables or default_tables()
    key = weighted_choice(tables.template_weights_for(floor), rng)
    return tables.template(key)


def select_enemy_type(
    floor: int,
    rng: Optional[RandomSource] = None,
    tables: Optional[WeightTables] = None,
) -> str:
    """Pick an enemy-type key for ``floor``; floors without a pool use the default one."""
    tables = tables or default_tables()
    return weighted_choice(tables.enemy_weights_for(floor), rng)


__all__ = ["weighted_choice", "select_room_template", "select_enemy_type"]
