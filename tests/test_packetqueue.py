from rtmplive.packetqueue import PacketQueue


def test_pop_returns_newest_first():
    queue = PacketQueue()
    for item in ("a", "b", "c"):
        queue.push(item)
    assert queue.pop() == "c"
    assert queue.pop() == "b"
    assert len(queue) == 1


def test_pop_empty_returns_none():
    queue = PacketQueue()
    assert queue.pop() is None
    assert len(queue) == 0


def test_bounded_push_replaces_newest():
    queue = PacketQueue(max_size=2)
    queue.push("a")
    queue.push("b")
    queue.push("c")
    assert len(queue) == 2
    assert queue.all() == ["a", "c"]


def test_all_drains():
    queue = PacketQueue()
    queue.push(1)
    queue.push(2)
    assert queue.all() == [1, 2]
    assert len(queue) == 0
    assert queue.all() == []


def test_unbounded_grows():
    queue = PacketQueue()
    for n in range(100):
        queue.push(n)
    assert len(queue) == 100