import pytest

from roomgrid.data import default_tables
from roomgrid.errors import ProvisionalMapError
from roomgrid.game import floor_signature
from roomgrid.floor import generate_floor_map
from roomgrid.rng import SeededRandom, seed_from_string
from roomgrid.session import FloorSession, SeedAnnouncement, daily_seed


def test_daily_seed_is_shared_per_date():
    assert daily_seed("2024-03-01") == daily_seed("2024-03-01")
    assert daily_seed("2024-03-01") != daily_seed("2024-03-02")
    assert daily_seed("2024-03-01") == seed_from_string("2024-03-01roomgrid-daily")
    assert 0 <= daily_seed() < 2**32


def test_announcement_create_picks_seed_and_template():
    ann = SeedAnnouncement.create(2)
    assert isinstance(ann.seed, int)
    assert ann.floor == 2
    assert ann.first_template_key in default_tables().templates

    plain = SeedAnnouncement.create(2, seed="fixed", pick_first_template=False)
    assert plain.seed == "fixed"
    assert plain.first_template_key is None


def test_announcement_dict_round_trip_keeps_seed_type():
    ann = SeedAnnouncement(seed="007", floor=3, first_template_key="cross")
    restored = SeedAnnouncement.from_dict(ann.to_dict())
    assert restored == ann
    assert restored.seed == "007"


@pytest.mark.parametrize(
    "data",
    [{"floor": 1}, {"seed": 1}, {"seed": None, "floor": 1}, {"seed": "", "floor": 1}, {"seed": True, "floor": 1}],
)
def test_announcement_from_dict_rejects_bad_payloads(data):
    with pytest.raises(ValueError):
        SeedAnnouncement.from_dict(data)


def test_peers_agree_on_announced_floor():
    ann = SeedAnnouncement(seed=555, floor=4, first_template_key="corners")
    a = FloorSession().apply_announcement(ann)
    b = FloorSession().apply_announcement(SeedAnnouncement.from_dict(ann.to_dict()))
    assert floor_signature(a) == floor_signature(b)
    assert a.get_current_room().template.key == "corners"


def test_announcement_without_override_matches_plain_generation():
    ann = SeedAnnouncement(seed=555, floor=4)
    fm = FloorSession().apply_announcement(ann)
    assert floor_signature(fm) == floor_signature(generate_floor_map(4, SeededRandom(555)))


def test_provisional_floor_is_replaced():
    session = FloorSession()
    with pytest.raises(ProvisionalMapError):
        session.require_authoritative()

    provisional = session.start_provisional(2)
    assert session.is_provisional
    with pytest.raises(ProvisionalMapError):
        session.require_authoritative()

    ann = SeedAnnouncement(seed=9, floor=2)
    authoritative = session.apply_announcement(ann)
    assert authoritative is not provisional
    assert not session.is_provisional
    assert session.require_authoritative() is authoritative
    # Re-applying the same announcement keeps the floor and its progress
    authoritative.move_to_room(authoritative.get_available_exits()[0].direction)
    assert session.apply_announcement(ann) is authoritative


def test_new_announcement_replaces_floor():
    session = FloorSession()
    first = session.apply_announcement(SeedAnnouncement(seed=1, floor=1))
    second = session.apply_announcement(SeedAnnouncement(seed=1, floor=2))
    assert second is not first
    assert second.floor == 2
