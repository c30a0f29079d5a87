"""Benchmark workers issuing key-value statements and their reports."""

from __future__ import annotations

import enum
import os
import random
import string
import threading
import time
from typing import Any

from .benchmark_options import BenchmarkOptions, Workload
from .tracker import Report, Tracker, Work

KV_SCHEMA = "CREATE TABLE IF NOT EXISTS model (key TEXT, value TEXT, UNIQUE(key))"
KV_READ_SQL = "SELECT value FROM model WHERE key = ?"
KV_WRITE_SQL = "INSERT OR REPLACE INTO model(key, value) VALUES(?, ?)"

_LETTERS = string.ascii_lowercase + string.ascii_uppercase


class WorkerType(enum.IntEnum):
    """Mix of statements a worker issues."""

    KV_WRITER = 0
    KV_READER = 1
    KV_READER_WRITER = 2


def rand_seq(n: int) -> str:
    """Return a random string of ``n`` ASCII letters."""
    return "".join(random.choice(_LETTERS) for _ in range(n))


def _rollback(connection: Any) -> None:
    try:
        connection.rollback()
    except Exception:
        pass


class Worker:
    """Executes statements against a DB-API connection and times them.

    ``last_work`` and ``last_args`` describe the previous operation and
    ``kv_keys`` holds the keys this worker has inserted.
    """

    def __init__(self, worker_type: WorkerType, options: BenchmarkOptions) -> None:
        self.worker_type = worker_type
        self.kv_key_size = options.kv_key_size
        self.kv_value_size = options.kv_value_size
        self.tracker = Tracker()
        self.last_work = Work.NONE
        self.last_args: tuple[Any, ...] = ()
        self.kv_keys: list[str] = []

    def _new_key(self) -> str:
        return rand_seq(self.kv_key_size)

    def _value(self) -> str:
        # A mix of easily compressible and random characters.
        half = self.kv_value_size // 2
        return rand_seq(1) * half + rand_seq(half)

    def get_work(self) -> tuple[Work, str, tuple[Any, ...]]:
        """Return the kind of work, the SQL statement and its arguments."""
        if self.worker_type is WorkerType.KV_WRITER:
            return Work.EXEC, KV_WRITE_SQL, (self._new_key(), self._value())
        if self.worker_type is WorkerType.KV_READER_WRITER:
            if random.randrange(2) == 0 and self.kv_keys:
                return Work.QUERY, KV_READ_SQL, (random.choice(self.kv_keys),)
            return Work.EXEC, KV_WRITE_SQL, (self._new_key(), self._value())
        return Work.NONE, "", ()

    def do_work(self, connection: Any) -> None:
        """Run the next statement on the connection and record its timing."""
        work, query, args = self.get_work()
        self.last_work = work
        self.last_args = args
        if work is Work.NONE:
            return

        error: BaseException | None = None
        if work is Work.EXEC:
            self.kv_keys.append(str(args[0]))
        start = time.time_ns()
        try:
            cursor = connection.cursor()
            try:
                cursor.execute(query, args)
                if work is Work.QUERY:
                    if cursor.fetchone() is None:
                        error = LookupError("no rows in result set")
            finally:
                cursor.close()
            if work is Work.EXEC:
                connection.commit()
        except Exception as exc:
            error = exc
            if work is Work.EXEC:
                self.kv_keys.pop()
                _rollback(connection)
        self.tracker.measure(work, start, error)

    def run(self, connection: Any, stop: threading.Event) -> None:
        """Keep working until ``stop`` is set."""
        while not stop.is_set():
            self.do_work(connection)

    def report(self) -> dict[Work, Report]:
        """Return the reports of this worker's tracker."""
        return self.tracker.report()


def create_workers(options: BenchmarkOptions) -> list[Worker]:
    """Create the workers for the configured workload."""
    worker_type = {
        Workload.KV_WRITE: WorkerType.KV_WRITER,
        Workload.KV_READ_WRITE: WorkerType.KV_READER_WRITER,
    }[options.workload]
    return [Worker(worker_type, options) for _ in range(options.workers)]


def report_name(index: int, work: Work) -> str:
    """Return the report file name for a worker and kind of work."""
    return f"{index}-{work}-{int(time.time())}"


def report_files(workers: list[Worker]) -> dict[str, str]:
    """Return a mapping of report file names to their content."""
    files = {}
    for index, worker in enumerate(workers):
        for work, report in worker.report().items():
            files[report_name(index, work)] = str(report)
    return files


def write_reports(directory: str | os.PathLike[str], workers: list[Worker]) -> str:
    """Write all reports into ``directory``/results and return that path."""
    results = os.path.join(directory, "results")
    try:
        os.makedirs(results, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"failed to create {results}: {exc}") from exc
    for filename, content in report_files(workers).items():
        path = os.path.join(results, filename)
        try:
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            raise OSError(f"failed to write {filename} in {results}: {exc}") from exc
    return results