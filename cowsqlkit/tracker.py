"""Timing measurements and reports of benchmark work."""

from __future__ import annotations

import enum
import threading
import time
from dataclasses import dataclass, field

_NS_PER_MS = 1_000_000
_MAX_DURATION = 2**63 - 1


class Work(enum.IntEnum):
    """Kind of statement a worker executed."""

    NONE = 0
    EXEC = 1  # a write
    QUERY = 2  # a read

    def __str__(self) -> str:
        return self.name.lower()


def dur_to_ms(duration_ns: int) -> str:
    """Format a duration in nanoseconds as milliseconds with six decimals."""
    ms, rest = divmod(int(duration_ns), _NS_PER_MS)
    return f"{ms}.{rest:06d}"


@dataclass(frozen=True)
class Measurement:
    """A successful operation: start time and duration, in nanoseconds."""

    start_ns: int
    duration_ns: int

    def __str__(self) -> str:
        return f"{self.start_ns} {dur_to_ms(self.duration_ns)}"


@dataclass(frozen=True)
class MeasurementError:
    """A failed operation: start time in nanoseconds and the error."""

    start_ns: int
    error: BaseException

    def __str__(self) -> str:
        return f"{self.start_ns} {self.error}"


@dataclass
class Report:
    """Summary of the measurements of one kind of work (durations in ns)."""

    n: int = 0
    n_err: int = 0
    total_duration: int = 0
    avg_duration: int = 0
    max_duration: int = 0
    min_duration: int = _MAX_DURATION
    measurements: list[Measurement] = field(default_factory=list)
    errors: list[MeasurementError] = field(default_factory=list)

    def __str__(self) -> str:
        measurements = "".join(f"{m}\n" for m in self.measurements)
        errors = "".join(f"{e}\n" for e in self.errors)
        return (
            f"n {self.n}\n"
            f"n_err {self.n_err}\n"
            f"avg [ms] {dur_to_ms(self.avg_duration)}\n"
            f"max [ms] {dur_to_ms(self.max_duration)}\n"
            f"min [ms] {dur_to_ms(self.min_duration)}\n"
            f"measurements [timestamp in ns] [ms]\n{measurements}\n"
            f"errors\n{errors}\n"
        )


class Tracker:
    """Collects measurements and errors per kind of work; thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._measurements: dict[Work, list[Measurement]] = {}
        self._errors: dict[Work, list[MeasurementError]] = {}

    def measure(self, work: Work, start_ns: int, error: BaseException | None = None) -> None:
        """Record an operation started at ``start_ns`` (epoch ns) and ending now."""
        duration = max(0, time.time_ns() - start_ns)
        with self._lock:
            if error is None:
                self._measurements.setdefault(work, []).append(Measurement(start_ns, duration))
            else:
                self._errors.setdefault(work, []).append(MeasurementError(start_ns, error))

    def report(self) -> dict[Work, Report]:
        """Return a report for every kind of work with at least one measurement."""
        with self._lock:
            reports = {}
            for work, measurements in self._measurements.items():
                errors = list(self._errors.get(work, []))
                durations = [m.duration_ns for m in measurements]
                total = sum(durations)
                reports[work] = Report(
                    n=len(measurements),
                    n_err=len(errors),
                    total_duration=total,
                    avg_duration=total // len(durations) if durations else 0,
                    max_duration=max(durations, default=0),
                    min_duration=min(durations, default=_MAX_DURATION),
                    measurements=list(measurements),
                    errors=errors,
                )
            return reports