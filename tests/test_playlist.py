import pytest

from rtmplive.playlist import MAX_TS_CACHE_NUM, NoKeyError, TSCache, TSItem

HEADER = b"#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-ALLOW-CACHE:NO\n"


def item(n, duration=3000):
    return TSItem(f"/live/s/{n}.ts", n, duration, bytes([n]))


def test_item_copies_data():
    buf = bytearray(b"abc")
    entry = TSItem("/a.ts", 1, 10, buf)
    buf[0] = 0
    assert entry.data == b"abc"


def test_get_item_and_missing_key():
    cache = TSCache("live/s")
    cache.set_item("/live/s/1.ts", item(1))
    assert cache.get_item("/live/s/1.ts") == item(1)
    with pytest.raises(NoKeyError):
        cache.get_item("/live/s/2.ts")


def test_eviction_keeps_latest():
    cache = TSCache("live/s")
    for n in range(1, MAX_TS_CACHE_NUM + 2):
        cache.set_item(item(n).name, item(n))
    with pytest.raises(KeyError):
        cache.get_item(item(1).name)
    assert cache.get_item(item(MAX_TS_CACHE_NUM + 1).name).seq_num == MAX_TS_CACHE_NUM + 1


def test_playlist_contents():
    cache = TSCache("live/s")
    for n in (5, 6):
        cache.set_item(item(n).name, item(n))
    text = cache.m3u8_playlist()
    assert text.startswith(HEADER)
    assert b"#EXT-X-MEDIA-SEQUENCE:5\n\n" in text
    assert b"#EXT-X-TARGETDURATION:4\n" in text
    assert b"#EXTINF:3.000,\n/live/s/5.ts\n" in text
    assert text.index(b"/live/s/5.ts") < text.index(b"/live/s/6.ts")


def test_empty_playlist():
    text = TSCache("live/s").m3u8_playlist()
    assert text.startswith(HEADER)
    assert b"#EXTINF" not in text