from ssid.window import GOLDEN, CornerWindow


def test_initial_cursor_offsets():
    w = CornerWindow(10)
    assert abs(GOLDEN - 0.6180339887) < 1e-9
    assert w.positions() == (1, 6, 3, 10)
    assert w.corners() == (0.0, 0.0, 0.0, 0.0)


def test_put_writes_at_write_cursor_only():
    w = CornerWindow(10)
    w.put(7.5)
    assert w.buf[0] == 7.5
    assert w.corners() == (7.5, 0.0, 0.0, 0.0)


def test_advance_wraps_each_cursor_independently():
    w = CornerWindow(10)
    for _ in range(4):
        w.advance()
    assert w.positions() == (5, 10, 7, 4)
    w.advance()
    assert w.positions() == (6, 1, 8, 5)


def test_every_cursor_visits_every_slot_with_period_n():
    n = 13
    w = CornerWindow(n)
    seen = [[] for _ in range(4)]
    for _ in range(3 * n):
        for k, c in enumerate(w.positions()):
            seen[k].append(c)
        w.advance()
    for seq in seen:
        assert sorted(seq[:n]) == list(range(1, n + 1))
        assert seq[:n] == seq[n:2 * n] == seq[2 * n:]


def test_reset_restores_start_state():
    w = CornerWindow(8)
    w.put(3.0)
    w.advance()
    w.reset()
    assert w.positions() == (1, int(GOLDEN * 8), int((1 - GOLDEN) * 8), 8)
    assert w.buf == [0.0] * 8


def test_corners_with_reads_as_if_written():
    w = CornerWindow(4)
    # n=4: cursor 3 starts on the write slot
    assert w.positions() == (1, 2, 1, 4)
    assert w.corners_with(9.0) == (9.0, 0.0, 9.0, 0.0)
    assert w.buf == [0.0] * 4
    w.put(9.0)
    assert w.corners() == (9.0, 0.0, 9.0, 0.0)
