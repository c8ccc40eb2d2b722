import datetime
import io
import time

from xdtorrent.rate import Rate, RateSample


def test_fresh_rate_is_empty():
    r = Rate(4)
    assert r.max() == 0
    assert r.min() == 0
    assert r.current() == 0
    assert r.mean() == 0.0


def test_add_sample_and_tick():
    r = Rate(4)
    r.add_sample(5)
    r.add_sample(2)
    assert r.current() == 7
    r.tick()
    assert r.current() == 0
    assert r.max() == 7
    assert r.min() == 0


def test_tick_wraps_and_clears():
    r = Rate(4)
    r.add_sample(5)
    for _ in range(4):
        r.tick()
    assert r.max() == 0


def test_min_of_empty_rate():
    assert Rate(0).min() == (1 << 64) - 1


def test_tick_stamps_new_sample():
    r = Rate(3)
    before = int(time.time())
    r.tick()
    after = int(time.time())
    assert before <= r.samples[1].timestamp <= after


def test_prev_tick_time():
    r = Rate(3)
    r.samples[2].timestamp = 1000
    assert r.prev_tick_time() == datetime.datetime.fromtimestamp(1000, tz=datetime.timezone.utc)
    r.samples[0].timestamp = 2000
    r.tick()
    assert r.prev_tick_time() == r.samples[0].time


def test_mean_with_future_tick_uses_unit_interval():
    r = Rate(4)
    r.add_sample(40)
    r.samples[-1].timestamp = int(time.time()) + 100
    assert r.mean() == 10.0


def test_sample_operations():
    s = RateSample()
    s.add(3)
    s.add(4)
    assert s.value == 7
    s.clear()
    assert s.value == 0
    assert s.timestamp > 0


def test_to_bencode_shape():
    r = Rate(2)
    r.add_sample(9)
    data = r.to_bencode()
    assert data["Samples"][0][0] == 9
    assert len(data["Samples"]) == 2


def test_dump_load_round_trip():
    r = Rate(3)
    r.add_sample(11)
    r.tick()
    r.add_sample(4)
    buf = io.BytesIO()
    r.dump(buf)
    buf.seek(0)
    other = Rate(1)
    other.load(buf)
    assert other.samples == r.samples
    assert other.max() == 11