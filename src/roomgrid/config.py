from __future__ import annotations

import argparse
import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROOMGRID_"

INVALID_POLICIES = ("raise", "regenerate", "log")


def parse_seed(text: Union[int, str, None]) -> Union[int, str, None]:
    """Interpret a seed given on the command line or in the environment.

    Decimal and ``0x`` hex strings become integers; anything else stays a
    string seed and is hashed by the random source.
    """
    if text is None or isinstance(text, int):
        return text
    s = str(text).strip()
    if not s:
        return None
    if s.lower().startswith("0x"):
        try:
            return int(s, 16)
        except ValueError:
            return s
    body = s[1:] if s.startswith("-") else s
    if body.isdigit():
        return int(s)
    return s


@dataclass
class GenerationSettings:
    """Tunables for floor generation.

    Every peer taking part in a shared run must use identical settings: the
    chances and caps below change how many draws the generator consumes.

    Sources, lowest to highest precedence: defaults < YAML file < env (ROOMGRID_*).
    """

    seed: Optional[Union[int, str]] = None
    floor: int = 1
    max_width: int = 10
    max_height: int = 6
    path_vertical_chance: float = 0.3
    branch_chance: float = 0.5
    branch_fraction: float = 0.3
    min_enemy_types: int = 3
    max_enemy_types: int = 5
    on_invalid: str = "raise"
    max_regenerate_attempts: int = 3
    tables_path: Optional[str] = None

    def validate(self) -> None:
        if self.floor < 1:
            raise ConfigError(f"floor must be >= 1, got {self.floor}")
        if self.max_width < 2:
            raise ConfigError(f"max_width must be >= 2, got {self.max_width}")
        if self.max_height < 1:
            raise ConfigError(f"max_height must be >= 1, got {self.max_height}")
        for name in ("path_vertical_chance", "branch_chance", "branch_fraction"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value}")
        if self.min_enemy_types < 0 or self.max_enemy_types < self.min_enemy_types:
            raise ConfigError(
                f"enemy type bounds invalid: min={self.min_enemy_types} max={self.max_enemy_types}"
            )
        if self.on_invalid not in INVALID_POLICIES:
            raise ConfigError(f"on_invalid must be one of {INVALID_POLICIES}, got {self.on_invalid!r}")
        if self.max_regenerate_attempts < 1:
            raise ConfigError("max_regenerate_attempts must be >= 1")

    def replace(self, **changes: Any) -> "GenerationSettings":
        updated = dataclasses.replace(self, **changes)
        updated.validate()
        return updated

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationSettings":
        allowed = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(k for k in data if k not in allowed)
        if unknown:
            logger.warning("Ignoring unknown generation settings: %s", unknown)
        filtered = {k: v for k, v in data.items() if k in allowed}
        if "seed" in filtered:
            filtered["seed"] = parse_seed(filtered["seed"])
        obj = cls(**filtered)
        obj.validate()
        return obj

    @classmethod
    def env_overrides(cls, env: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        mapping = {
            "SEED": ("seed", parse_seed),
            "FLOOR": ("floor", int),
            "MAX_WIDTH": ("max_width", int),
            "MAX_HEIGHT": ("max_height", int),
            "PATH_VERTICAL_CHANCE": ("path_vertical_chance", float),
            "BRANCH_CHANCE": ("branch_chance", float),
            "BRANCH_FRACTION": ("branch_fraction", float),
            "MIN_ENEMY_TYPES": ("min_enemy_types", int),
            "MAX_ENEMY_TYPES": ("max_enemy_types", int),
            "ON_INVALID": ("on_invalid", str),
            "TABLES": ("tables_path", str),
        }
        out: Dict[str, Any] = {}
        for suffix, (field_name, caster) in mapping.items():
            env_key = ENV_PREFIX + suffix
            raw = env.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                out[field_name] = caster(raw)
            except ValueError as exc:
                raise ConfigError(f"Invalid value for {env_key}={raw!r}: {exc}") from exc
        return out

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "GenerationSettings":
        return cls.from_dict(cls.env_overrides(env))

    @classmethod
    def read_yaml(cls, path: Union[str, Path]) -> Dict[str, Any]:
        p = Path(path).expanduser()
        if not p.exists():
            raise FileNotFoundError(f"Settings file not found: {p}")
        with p.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
        if not isinstance(doc, dict):
            raise ConfigError(f"Settings file {p} must contain a mapping")
        # Either top-level keys or a "generation:" section
        section = doc.get("generation")
        if isinstance(section, dict):
            return dict(section)
        return doc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "GenerationSettings":
        return cls.from_dict(cls.read_yaml(path))

    @classmethod
    def from_sources(
        cls,
        *,
        file_path: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> "GenerationSettings":
        data: Dict[str, Any] = {}
        env = os.environ if env is None else env
        chosen = file_path or env.get(ENV_PREFIX + "SETTINGS_FILE")
        if chosen:
            data.update(cls.read_yaml(chosen))
            logger.debug("Loaded generation settings from %s", chosen)
        data.update(cls.env_overrides(env))
        return cls.from_dict(data)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="roomgrid",
        description="Generate a deterministic floor map from a seed and floor number.",
    )
    parser.add_argument("--seed", default=None, help="Shared seed (int, 0x-hex or any string).")
    parser.add_argument("--floor", type=int, default=None, help="Floor number (>= 1).")
    parser.add_argument(
        "--settings",
        dest="settings_path",
        type=Path,
        default=None,
        help="Path to a YAML file with generation settings.",
    )
    parser.add_argument("--tables", dest="tables_path", default=None, help="Path to a weight-table YAML file.")
    parser.add_argument("--daily", default=None, metavar="YYYY-MM-DD", help="Use the daily seed for this date.")
    parser.add_argument("--ascii", action="store_true", help="Print the text dump instead of JSON.")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, env: Optional[Dict[str, str]] = None) -> GenerationSettings:
    """Merge file/env settings with explicit command-line overrides."""
    settings = GenerationSettings.from_sources(file_path=args.settings_path, env=env)
    overrides: Dict[str, Any] = {}
    if args.seed is not None:
        overrides["seed"] = parse_seed(args.seed)
    if args.floor is not None:
        overrides["floor"] = args.floor
    if args.tables_path is not None:
        overrides["tables_path"] = args.tables_path
    if overrides:
        settings = settings.replace(**overrides)
    return settings
