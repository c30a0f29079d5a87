"""Benchmark workloads and options."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Workload(enum.IntEnum):
    """Kind of workload run by the benchmark."""

    KV_WRITE = 0
    KV_READ_WRITE = 1


def parse_workload(name: str) -> Workload:
    """Parse a workload name case-insensitively; unknown names mean kvwrite."""
    return {
        "kvwrite": Workload.KV_WRITE,
        "kvreadwrite": Workload.KV_READ_WRITE,
    }.get(name.lower(), Workload.KV_WRITE)


@dataclass
class BenchmarkOptions:
    """Benchmark parameters; durations are in seconds, sizes in bytes.

    The benchmark starts only once every address in ``cluster`` is online.
    """

    cluster: list[str] = field(default_factory=list)
    cluster_timeout: float = 60
    workload: Workload = Workload.KV_WRITE
    duration: float = 60
    workers: int = 1
    kv_key_size: int = 32
    kv_value_size: int = 1024