"""Ring buffer of per-tick samples used for transfer rates."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from time import time as _now
from typing import BinaryIO

from xdtorrent import bencode

_UINT64_MASK = (1 << 64) - 1


@dataclass
class RateSample:
    """A magnitude and the unix time at which it was started."""

    value: int = 0
    timestamp: int = 0

    @property
    def time(self) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(self.timestamp, tz=datetime.timezone.utc)

    def clear(self) -> None:
        self.set(0)

    def set(self, n: int) -> None:
        self.value = n & _UINT64_MASK
        self.timestamp = int(_now())

    def add(self, n: int) -> None:
        self.value = (self.value + n) & _UINT64_MASK


class Rate:
    """Fixed number of samples; ``tick`` moves to the next one."""

    def __init__(self, sample_len: int) -> None:
        self.samples = [RateSample() for _ in range(sample_len)]
        self._index = 0

    def tick(self) -> None:
        self._index = (self._index + 1) % len(self.samples)
        self.samples[self._index].clear()

    def add_sample(self, n: int) -> None:
        self.samples[self._index].add(n)

    def max(self) -> int:
        return max((s.value for s in self.samples), default=0)

    def min(self) -> int:
        return min((s.value for s in self.samples), default=_UINT64_MASK)

    def current(self) -> int:
        return self.samples[self._index].value

    def prev_tick_time(self) -> datetime.datetime:
        return self.samples[self._index - 1].time

    def mean(self) -> float:
        last_tick = self.samples[self._index - 1].timestamp
        total = sum(s.value for s in self.samples) // len(self.samples)
        elapsed = float(int(_now()) - last_tick)
        if elapsed <= 0:
            elapsed = 1.0
        return total / elapsed

    def to_bencode(self) -> dict:
        """Return the bencodable form of this rate."""
        return {"Samples": [[s.value, s.timestamp] for s in self.samples]}

    def dump(self, stream: BinaryIO) -> None:
        bencode.dump(self.to_bencode(), stream)

    def load(self, stream: BinaryIO) -> None:
        obj = bencode.load(stream)
        if not isinstance(obj, dict):
            raise bencode.BencodeError("rate must be a dictionary")
        raw = obj.get("Samples")
        if raw is None:
            return
        if not isinstance(raw, list):
            raise bencode.BencodeError("rate samples must be a list")
        samples = []
        for entry in raw:
            if not (isinstance(entry, list) and len(entry) == 2
                    and all(isinstance(x, int) for x in entry)):
                raise bencode.BencodeError(f"invalid rate sample {entry!r}")
            samples.append(RateSample(entry[0], entry[1]))
        self.samples = samples
        if self._index >= len(samples):
            self._index = 0