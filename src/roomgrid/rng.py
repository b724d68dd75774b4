from __future__ import annotations

import hashlib
import json
import logging
import math
import random
import secrets
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Tuple, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Seed = Union[int, str]

_MASK32 = 0xFFFFFFFF
_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


class RandomSource(Protocol):
    """Minimal random API the generator consumes.

    Every call site that affects generated topology or content goes through
    one of these three methods, so two sources that return the same values
    for the same call sequence yield the same floor.
    """

    def next(self) -> float: ...

    def range(self, min_value: int, max_value: int) -> int: ...

    def range_float(self, min_value: float, max_value: float) -> float: ...


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def seed_from_string(text: str) -> int:
    """Hash a string into an unsigned 32-bit seed.

    Uses the ``h * 31 + c`` rolling hash over UTF-16 code units so that the
    result matches peers that hash the same string in other runtimes.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & _MASK32
    return h


def create_seed(*components: int) -> int:
    """Fold integer components (e.g. run seed, floor, room) into one 32-bit seed."""
    seed = 0
    for c in components:
        seed = (seed * 31 + int(c)) & _MASK32
    return seed


def normalize_seed(seed: Seed) -> int:
    """Return the unsigned 32-bit integer used to initialise a SeededRandom."""
    if isinstance(seed, bool):
        raise TypeError("Seed must be an int or str, got bool")
    if isinstance(seed, int):
        return seed & _MASK32
    if isinstance(seed, str):
        return seed_from_string(seed)
    raise TypeError("Unsupported seed type: %r" % (type(seed),))


class SeededRandom:
    """Deterministic random source (Mulberry32).

    Output is a pure function of the seed and the call history: no global
    state and no external entropy. Two instances built from the same seed and
    driven through the same calls return identical values.
    """

    def __init__(self, seed: Seed):
        self._state = normalize_seed(seed)
        self._initial_state = self._state
        self.seed = seed
        logger.debug("SeededRandom initialised: seed=%r state=%d", seed, self._state)

    def next(self) -> float:
        """Return the next float in [0, 1)."""
        self._state = (self._state + _MULBERRY_INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    def range(self, min_value: int, max_value: int) -> int:
        """Return an integer in [min_value, max_value).

        An empty interval logs a warning and returns ``min_value`` without
        advancing the state.
        """
        if max_value <= min_value:
            logger.warning("SeededRandom.range: invalid range [%s, %s); returning min", min_value, max_value)
            return min_value
        return math.floor(min_value + self.next() * (max_value - min_value))

    def range_float(self, min_value: float, max_value: float) -> float:
        return min_value + self.next() * (max_value - min_value)

    def choose(self, seq: Sequence[T]) -> Optional[T]:
        if not seq:
            return None
        return seq[self.range(0, len(seq))]

    def shuffle(self, seq: Sequence[T]) -> List[T]:
        """Return a shuffled copy of ``seq`` (Fisher-Yates)."""
        items = list(seq)
        for i in range(len(items) - 1, 0, -1):
            j = self.range(0, i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def probability(self, chance: float) -> bool:
        return self.next() < chance

    def reset(self) -> None:
        self._state = self._initial_state

    def get_state(self) -> int:
        return self._state

    def set_state(self, state: int) -> None:
        self._state = state & _MASK32

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed!r})"


class EntropyRandom:
    """Non-deterministic source with the SeededRandom call surface.

    Only valid where the result never has to match another peer, e.g.
    single-player floors or a provisional map built before the authoritative
    seed arrives.
    """

    def __init__(self) -> None:
        self._rng = random.Random()

    def next(self) -> float:
        return self._rng.random()

    def range(self, min_value: int, max_value: int) -> int:
        if max_value <= min_value:
            return min_value
        return self._rng.randrange(min_value, max_value)

    def range_float(self, min_value: float, max_value: float) -> float:
        return min_value + self._rng.random() * (max_value - min_value)


Call = Tuple[str, Tuple[Any, ...], Any]


class TracingRandom:
    """Wrap a source and record every call as ``(method, args, result)``.

    Comparing the traces of two peers checks call-count and call-order parity,
    not just the end state.
    """

    def __init__(self, inner: RandomSource):
        self.inner = inner
        self.calls: List[Call] = []

    def next(self) -> float:
        value = self.inner.next()
        self.calls.append(("next", (), value))
        return value

    def range(self, min_value: int, max_value: int) -> int:
        value = self.inner.range(min_value, max_value)
        self.calls.append(("range", (min_value, max_value), value))
        return value

    def range_float(self, min_value: float, max_value: float) -> float:
        value = self.inner.range_float(min_value, max_value)
        self.calls.append(("range_float", (min_value, max_value), value))
        return value

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def clear(self) -> None:
        self.calls.clear()


def _to_stable_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class RNGManager:
    """Derives independent deterministic streams from one run seed.

    Usage pattern:
        rngm = RNGManager("abc123")
        floor_rng = rngm.context_rng("floor_layout", floor)
        room_rng = rngm.context_rng("room_spawns", floor, x, y)

    Each derived stream is a fresh SeededRandom, so consuming one never shifts
    another. ``master_seed=None`` draws a random master seed (single-peer use).
    """

    master_seed: Optional[Seed]

    def __post_init__(self) -> None:
        if self.master_seed is None:
            generated = secrets.randbits(32)
            object.__setattr__(self, "master_seed", generated)
            logger.info("No master seed provided; generated random seed: %d", generated)
        else:
            logger.debug("Using master seed: %r", self.master_seed)

    def derive_seed(self, domain: str, *identifiers: Any) -> int:
        """Derive a 32-bit seed from the master seed, a domain name and identifiers."""
        payload = {
            "domain": domain,
            "ids": list(identifiers),
            "master": normalize_seed(self.master_seed),
            "algo": "blake2b-32",
        }
        data = _to_stable_json(payload).encode("utf-8")
        seed_int = int.from_bytes(hashlib.blake2b(data, digest_size=4).digest(), "big", signed=False)
        logger.debug("Derived seed for domain=%s ids=%s -> %d", domain, identifiers, seed_int)
        return seed_int

    def context_rng(self, domain: str, *identifiers: Any) -> SeededRandom:
        return SeededRandom(self.derive_seed(domain, *identifiers))


__all__ = [
    "RandomSource",
    "SeededRandom",
    "EntropyRandom",
    "TracingRandom",
    "RNGManager",
    "seed_from_string",
    "create_seed",
    "normalize_seed",
]
