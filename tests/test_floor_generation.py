import logging

import pytest

from roomgrid.config import GenerationSettings
from roomgrid.data import default_tables
from roomgrid.errors import ConfigError, ConstructionInvariantViolation, RoomGridError
from roomgrid.floor import (
    DIRECTIONS,
    FloorMap,
    RoomType,
    find_path_bfs,
    generate_floor_map,
    grid_size_for_floor,
)
from roomgrid.rng import SeededRandom, TracingRandom


@pytest.mark.parametrize(
    "floor,expected",
    [(1, (4, 2)), (2, (5, 3)), (3, (6, 3)), (4, (7, 4)), (7, (10, 5)), (10, (10, 6)), (25, (10, 6))],
)
def test_grid_size_scales_and_clamps(floor, expected):
    assert grid_size_for_floor(floor) == expected


def test_grid_size_rejects_floor_zero():
    with pytest.raises(ConfigError):
        grid_size_for_floor(0)


def assert_well_formed(fm: FloorMap):
    rooms = list(fm.iter_rooms())
    assert fm.start_position == (0, fm.height // 2)
    assert fm.boss_position[0] == fm.width - 1
    assert [r.type for r in rooms].count(RoomType.START) == 1
    assert [r.type for r in rooms].count(RoomType.BOSS) == 1
    assert fm.get_room(*fm.start_position).type is RoomType.START
    assert fm.get_room(*fm.boss_position).type is RoomType.BOSS

    # Reachability over declared connections only
    assert fm.validate()
    assert find_path_bfs(fm.get_room, fm.start_position, fm.boss_position) is not None

    # Connection flags mirror physical neighbors exactly
    for room in rooms:
        assert not hasattr(room.connections, "left")
        for d in DIRECTIONS:
            neighbor = fm.get_room(*room.adjacent_position(d))
            assert room.connections.has(d) == (neighbor is not None)

    assert fm.get_total_rooms() == len(rooms) <= fm.width * fm.height


@pytest.mark.parametrize("floor", range(1, 13))
@pytest.mark.parametrize("seed", [0, 42, "abc123", 987654321])
def test_generated_floors_are_well_formed(floor, seed):
    fm = generate_floor_map(floor, SeededRandom(seed))
    assert (fm.width, fm.height) == grid_size_for_floor(floor)
    assert fm.is_valid
    assert_well_formed(fm)


def test_room_content_assignment():
    tables = default_tables()
    fm = generate_floor_map(3, SeededRandom("content"))
    pool = set(tables.enemy_weights_for(3))
    for room in fm.iter_rooms():
        if room.type is RoomType.BOSS:
            assert room.template is None
            assert room.enemy_types == ()
        elif room.type is RoomType.START:
            assert room.template is not None
            assert room.enemy_types == ()
        else:
            assert room.template is not None
            assert 3 <= len(room.enemy_types) <= 5
            assert set(room.enemy_types) <= pool


def test_content_is_assigned_once():
    fm = generate_floor_map(1, SeededRandom(1))
    room = fm.get_current_room()
    with pytest.raises(RoomGridError):
        room.assign_content(None, ())


def test_room_position_is_immutable():
    fm = generate_floor_map(1, SeededRandom(1))
    room = fm.get_current_room()
    with pytest.raises(AttributeError):
        room.x = 5


def test_floor1_seed42_scenario():
    fm = generate_floor_map(1, SeededRandom(42))
    assert (fm.width, fm.height) == (4, 2)
    assert fm.start_position == (0, 1)
    # The boss row is the very first draw from the stream
    expected_row = SeededRandom(42).range(0, 2)
    assert fm.boss_position == (3, expected_row)
    assert fm.validate()


def test_single_row_floor_skips_boss_row_draw():
    tr = TracingRandom(SeededRandom(5))
    fm = FloorMap(1, width=4, height=1, rng=tr)
    assert fm.boss_position == (3, 0)
    assert tr.calls[0][0] == "next"
    assert all(args != (0, 1) for _, args, _ in tr.calls)
    # Straight corridor; nothing to branch into
    assert fm.get_total_rooms() == 4
    assert fm.validate()


def test_invalid_dimensions():
    with pytest.raises(ConfigError):
        FloorMap(1, width=1, height=3, rng=SeededRandom(1))
    with pytest.raises(ConfigError):
        FloorMap(1, width=4, height=0, rng=SeededRandom(1))
    with pytest.raises(ConfigError):
        FloorMap(0, rng=SeededRandom(1))


def test_unseeded_generation_is_still_valid():
    for _ in range(20):
        fm = generate_floor_map(6)
        assert_well_formed(fm)


def test_settings_caps_apply():
    settings = GenerationSettings(max_width=5, max_height=3)
    fm = generate_floor_map(9, SeededRandom(9), settings=settings)
    assert (fm.width, fm.height) == (5, 3)
    assert_well_formed(fm)


def test_branch_fraction_zero_yields_only_path():
    settings = GenerationSettings(branch_fraction=0.0)
    tr = TracingRandom(SeededRandom(17))
    fm = generate_floor_map(5, tr, settings=settings)
    assert_well_formed(fm)
    # A monotone walk has exactly (dx + |dy| + 1) cells
    sx, sy = fm.start_position
    bx, by = fm.boss_position
    assert fm.get_total_rooms() == (bx - sx) + abs(by - sy) + 1


def _topology_call_count(monkeypatch, floor, seed):
    with monkeypatch.context() as m:
        m.setattr(FloorMap, "_assign_room_content", lambda self: None)
        tr = TracingRandom(SeededRandom(seed))
        generate_floor_map(floor, tr)
    return tr.call_count


def test_first_template_override_leaves_topology_stream_alone(monkeypatch):
    k = _topology_call_count(monkeypatch, 2, "pre")
    plain = TracingRandom(SeededRandom("pre"))
    fm_plain = generate_floor_map(2, plain)
    override = TracingRandom(SeededRandom("pre"))
    fm_override = generate_floor_map(2, override, first_template_key="hallway")

    assert fm_override.get_current_room().template.key == "hallway"
    assert fm_plain.connection_table() == fm_override.connection_table()
    assert plain.calls[:k] == override.calls[:k]


def test_validation_failure_raises_by_default(monkeypatch):
    monkeypatch.setattr(FloorMap, "validate", lambda self: False)
    with pytest.raises(ConstructionInvariantViolation) as exc:
        generate_floor_map(2, SeededRandom(3))
    assert exc.value.floor == 2


def test_validation_failure_can_log_and_continue(monkeypatch, caplog):
    monkeypatch.setattr(FloorMap, "validate", lambda self: False)
    settings = GenerationSettings(on_invalid="log")
    with caplog.at_level(logging.ERROR, logger="roomgrid.floor.map"):
        fm = generate_floor_map(2, SeededRandom(3), settings=settings)
    assert fm.is_valid is False
    assert fm.current_position == fm.start_position
    assert any("invariant" in r.getMessage() for r in caplog.records)


def test_validation_failure_regenerates_with_derived_seed(monkeypatch):
    results = iter([False, True])
    monkeypatch.setattr(FloorMap, "validate", lambda self: next(results))
    settings = GenerationSettings(on_invalid="regenerate")
    fm = generate_floor_map(2, seed=42, settings=settings)
    assert fm.is_valid
    assert fm.seed != 42


def test_regeneration_gives_up(monkeypatch):
    monkeypatch.setattr(FloorMap, "validate", lambda self: False)
    settings = GenerationSettings(on_invalid="regenerate", max_regenerate_attempts=2)
    with pytest.raises(ConstructionInvariantViolation):
        generate_floor_map(2, seed=42, settings=settings)


@pytest.mark.parametrize(
    "settings",
    [
        GenerationSettings(branch_chance=2.0),
        GenerationSettings(min_enemy_types=5, max_enemy_types=3),
        GenerationSettings(on_invalid="retry"),
    ],
)
def test_directly_built_settings_are_validated(settings):
    with pytest.raises(ConfigError):
        generate_floor_map(2, SeededRandom(1), settings=settings)
    with pytest.raises(ConfigError):
        FloorMap(2, width=5, height=3, rng=SeededRandom(1), settings=settings)


def test_rng_and_seed_together_are_rejected():
    with pytest.raises(ConfigError):
        generate_floor_map(2, SeededRandom(1), seed=2)
