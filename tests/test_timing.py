from rtmplive.timing import H264_DEFAULT_HZ, SYNC_MS, Aligner, AudioCache, SegmentStatus

BASE = 90000
INC = 1920


def test_first_frame_sets_base():
    aligner = Aligner()
    assert aligner.align(BASE, INC) == BASE
    assert aligner.frame_base == BASE


def test_close_frames_snap_to_grid():
    aligner = Aligner()
    aligner.align(BASE, INC)
    assert aligner.align(BASE + INC + 50, INC) == BASE + INC
    assert aligner.align(BASE + 2 * INC - 30, INC) == BASE + 2 * INC


def test_threshold_boundary():
    limit = SYNC_MS * H264_DEFAULT_HZ
    aligner = Aligner()
    aligner.align(BASE, INC)
    assert aligner.align(BASE + INC + limit, INC) == BASE + INC
    far = BASE + 2 * INC + limit + 1
    assert aligner.align(far, INC) == far
    assert aligner.align(far + INC, INC) == far + INC


def test_audio_cache_batches():
    cache = AudioCache()
    cache.cache(b"ab", 100)
    cache.cache(b"cd", 200)
    assert len(cache) == 2
    assert cache.take_frame() == (len(b"abcd"), 100, b"abcd")
    assert len(cache) == 0
    cache.cache(b"x", 300)
    assert cache.take_frame() == (1, 300, b"x")


def test_segment_duration():
    status = SegmentStatus()
    status.update(False, 1000)
    status.update(True, 4000)
    assert status.has_video
    assert status.duration_ms() == 4000 - 1000


def test_reset_starts_new_segment():
    status = SegmentStatus()
    status.update(True, 1000)
    status.reset_and_new()
    assert status.seq_id == 1
    assert not status.has_video
    status.update(False, 7000)
    assert status.first_timestamp == 7000
    assert status.duration_ms() == 0