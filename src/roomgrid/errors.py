from __future__ import annotations


class RoomGridError(Exception):
    """Base exception for the roomgrid package."""


class ConstructionInvariantViolation(RoomGridError):
    """Raised when a generated floor has no start-to-boss path.

    The path construction step makes this impossible for a correct
    implementation, so seeing it means a logic fault, not a runtime condition.
    """

    def __init__(self, message: str, floor: int | None = None, seed=None):
        super().__init__(message)
        self.floor = floor
        self.seed = seed


class WeightTableError(RoomGridError, ValueError):
    """Raised when a weight table is empty, negative, all-zero or malformed."""


class ConfigError(RoomGridError, ValueError):
    """Raised when generation settings are invalid."""


class ProvisionalMapError(RoomGridError):
    """Raised when gameplay tries to commit effects against a provisional map."""
