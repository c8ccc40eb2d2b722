"""Named transfer-rate tracker."""

from __future__ import annotations

import io
from typing import BinaryIO, Iterator

from xdtorrent import bencode
from xdtorrent.rate import Rate


class Tracker:
    """Keeps one :class:`Rate` per name."""

    def __init__(self) -> None:
        self.history = 128
        self.rates: dict[str, Rate] = {}

    def new_rate(self, name: str) -> None:
        self.rates[name] = Rate(self.history)

    def add_sample(self, name: str, n: int) -> None:
        """Add to a named rate; unknown names are ignored."""
        rate = self.rates.get(name)
        if rate is not None:
            rate.add_sample(n)

    def rate(self, name: str) -> Rate | None:
        return self.rates.get(name)

    def items(self) -> Iterator[tuple[str, Rate]]:
        yield from list(self.rates.items())

    def tick(self) -> None:
        for rate in self.rates.values():
            rate.tick()

    def dump(self, stream: BinaryIO) -> None:
        bencode.dump({name: rate.to_bencode() for name, rate in self.rates.items()}, stream)

    def load(self, stream: BinaryIO) -> None:
        obj = bencode.load(stream)
        if not isinstance(obj, dict):
            raise bencode.BencodeError("stats must be a dictionary")
        for name, raw in obj.items():
            rate = Rate(0)
            rate.load(io.BytesIO(bencode.encode(raw)))
            self.rates[name] = rate