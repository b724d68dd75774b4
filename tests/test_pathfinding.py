from roomgrid.floor import RoomNode, RoomType, find_path_bfs, reachable_positions


def _lookup(rooms):
    index = {r.position: r for r in rooms}
    return lambda x, y: index.get((x, y))


def _connect(rooms):
    lookup = _lookup(rooms)
    for r in rooms:
        r.connections.right = lookup(r.x + 1, r.y) is not None
        r.connections.up = lookup(r.x, r.y - 1) is not None
        r.connections.down = lookup(r.x, r.y + 1) is not None
    return lookup


def test_bfs_follows_right_and_vertical_moves():
    rooms = [
        RoomNode(0, 1, RoomType.START),
        RoomNode(1, 1),
        RoomNode(1, 0),
        RoomNode(2, 0, RoomType.BOSS),
    ]
    lookup = _connect(rooms)
    assert find_path_bfs(lookup, (0, 1), (2, 0)) == 3
    assert reachable_positions(lookup, (0, 1)) == {(0, 1), (1, 1), (1, 0), (2, 0)}


def test_bfs_never_moves_left():
    rooms = [RoomNode(0, 0, RoomType.BOSS), RoomNode(1, 0, RoomType.START)]
    lookup = _connect(rooms)
    assert find_path_bfs(lookup, (1, 0), (0, 0)) is None
    assert reachable_positions(lookup, (1, 0)) == {(1, 0)}


def test_stale_flag_into_empty_cell_is_not_reachable():
    start = RoomNode(0, 0, RoomType.START)
    start.connections.right = True
    lookup = _lookup([start])
    assert reachable_positions(lookup, (0, 0)) == {(0, 0)}
    assert find_path_bfs(lookup, (0, 0), (1, 0)) is None


def test_missing_start():
    lookup = _lookup([])
    assert reachable_positions(lookup, (0, 0)) == set()
    assert find_path_bfs(lookup, (0, 0), (0, 0)) is None
