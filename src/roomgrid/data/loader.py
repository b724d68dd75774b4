from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from ..errors import WeightTableError

logger = logging.getLogger(__name__)

_PKG = "roomgrid.data"
_TABLES_RESOURCE = "tables.yaml"
_SCHEMA_RESOURCE = "weight_tables.schema.json"

Weights = Dict[str, float]


@dataclass(frozen=True)
class Obstacle:
    x: float
    y: float
    width: float
    height: float
    type: str
    char: str = "#"


@dataclass(frozen=True)
class RoomTemplate:
    """Opaque room layout handle stored on rooms; the floor graph never reads it."""

    key: str
    name: str
    obstacles: Tuple[Obstacle, ...] = ()


@dataclass(frozen=True)
class WeightTables:
    """Static weight tables shared by every peer.

    Weight mappings keep their declaration order; a weighted draw walks the
    labels in that order, so peers must use identical tables.
    """

    templates: Dict[str, RoomTemplate]
    template_weights: Weights
    enemy_weights: Weights
    template_weights_by_floor: Dict[int, Weights] = field(default_factory=dict)
    enemy_weights_by_floor: Dict[int, Weights] = field(default_factory=dict)

    def template_weights_for(self, floor: int) -> Weights:
        return self.template_weights_by_floor.get(floor, self.template_weights)

    def enemy_weights_for(self, floor: int) -> Weights:
        return self.enemy_weights_by_floor.get(floor, self.enemy_weights)

    def template(self, key: str) -> RoomTemplate:
        try:
            return self.templates[key]
        except KeyError as e:
            raise KeyError(f"Unknown room template: {key}") from e

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "WeightTables":
        """Build tables from the parsed YAML structure, validating it first."""
        raw = _normalize_floor_keys(raw)
        validate_tables(raw)
        templates: Dict[str, RoomTemplate] = {}
        for key, spec in raw["templates"].items():
            obstacles = tuple(
                Obstacle(
                    x=o["x"],
                    y=o["y"],
                    width=o["width"],
                    height=o["height"],
                    type=o["type"],
                    char=o.get("char", "#"),
                )
                for o in spec.get("obstacles") or ()
            )
            templates[str(key)] = RoomTemplate(key=str(key), name=str(spec["name"]), obstacles=obstacles)

        tw = raw["template_weights"]
        ew = raw["enemy_weights"]
        tables = cls(
            templates=templates,
            template_weights=_weights(tw["default"]),
            enemy_weights=_weights(ew["default"]),
            template_weights_by_floor={int(k): _weights(v) for k, v in (tw.get("floors") or {}).items()},
            enemy_weights_by_floor={int(k): _weights(v) for k, v in (ew.get("floors") or {}).items()},
        )
        for floor_weights in (tables.template_weights, *tables.template_weights_by_floor.values()):
            unknown = [k for k in floor_weights if k not in templates]
            if unknown:
                raise WeightTableError(f"Template weights reference unknown templates: {unknown}")
        return tables


def _normalize_floor_keys(raw: Any) -> Any:
    # YAML reads unquoted floor numbers as ints; the schema matches string keys.
    if not isinstance(raw, Mapping):
        return raw
    out = dict(raw)
    for section in ("template_weights", "enemy_weights"):
        block = out.get(section)
        if isinstance(block, Mapping) and isinstance(block.get("floors"), Mapping):
            block = dict(block)
            block["floors"] = {str(k): v for k, v in block["floors"].items()}
            out[section] = block
    return out


def _weights(raw: Mapping[Any, Any]) -> Weights:
    return {str(k): float(v) for k, v in raw.items()}


@lru_cache(maxsize=1)
def _schema_validator() -> Draft7Validator:
    text = resources.files(_PKG).joinpath(_SCHEMA_RESOURCE).read_text(encoding="utf-8")
    return Draft7Validator(json.loads(text))


def validate_tables(raw: Any) -> None:
    """Validate a parsed weight-table document against the bundled JSON schema."""
    errors = sorted(_schema_validator().iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"at {'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors
        )
        raise WeightTableError(f"Weight table validation failed: {details}")


def load_weight_tables(path: Optional[os.PathLike | str] = None) -> WeightTables:
    """Load weight tables from YAML.

    If path is None, loads the bundled resource roomgrid/data/tables.yaml.
    """
    if path is None:
        text = resources.files(_PKG).joinpath(_TABLES_RESOURCE).read_text(encoding="utf-8")
        logger.debug("Loaded bundled weight tables resource")
    else:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Weight table file not found: {p}")
        text = p.read_text(encoding="utf-8")
        logger.debug("Loaded weight tables from path: %s", p)

    raw = yaml.safe_load(text) or {}
    tables = WeightTables.from_mapping(raw)
    logger.debug(
        "Weight tables: %d templates, %d floor-specific enemy pools",
        len(tables.templates),
        len(tables.enemy_weights_by_floor),
    )
    return tables


@lru_cache(maxsize=1)
def default_tables() -> WeightTables:
    """Bundled tables, parsed once per process."""
    return load_weight_tables()
