"""Byte/chunk counters and throughput summaries."""

import time
from dataclasses import dataclass


@dataclass(slots=True)
class TransferStats:
    """Cumulative byte and chunk counts of one or more transfers."""

    bytes: int = 0
    chunks: int = 0

    def add(self, count: int) -> None:
        self.bytes += count
        self.chunks += 1

    def __iadd__(self, other: "TransferStats") -> "TransferStats":
        self.bytes += other.bytes
        self.chunks += other.chunks
        return self


@dataclass(frozen=True, slots=True)
class Throughput:
    """Timing summary computed once when a transfer finishes."""

    time_ms: int
    size: int
    throughput: int
    part_size: int

    @staticmethod
    def now() -> int:
        return time.monotonic_ns()

    @classmethod
    def measure(cls, started_ns: int, stats: TransferStats, finished_ns: int | None = None) -> "Throughput":
        finished_ns = cls.now() if finished_ns is None else finished_ns
        # +1 keeps the divisor positive for sub-millisecond transfers
        time_ms = (finished_ns - started_ns) // 1_000_000 + 1
        part_size = stats.bytes // stats.chunks if stats.chunks > 0 else 0
        return cls(
            time_ms=time_ms,
            size=stats.bytes,
            throughput=(1000 * stats.bytes) // time_ms,
            part_size=part_size,
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "time_ms": self.time_ms,
            "size": self.size,
            "throughput": self.throughput,
            "part_size": self.part_size,
        }
