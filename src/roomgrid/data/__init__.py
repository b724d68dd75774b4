from .loader import (
    Obstacle,
    RoomTemplate,
    WeightTables,
    default_tables,
    load_weight_tables,
    validate_tables,
)

__all__ = [
    "Obstacle",
    "RoomTemplate",
    "WeightTables",
    "default_tables",
    "load_weight_tables",
    "validate_tables",
]
