"""Node descriptions, roles, log levels and node stores."""

from __future__ import annotations

import enum
import os
import tempfile
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import yaml


class NodeRole(enum.IntEnum):
    """Role of a node in the cluster."""

    VOTER = 0
    STANDBY = 1
    SPARE = 2

    def __str__(self) -> str:
        return _ROLE_NAMES[self]


_ROLE_NAMES = {
    NodeRole.VOTER: "voter",
    NodeRole.STANDBY: "stand-by",
    NodeRole.SPARE: "spare",
}


class LogLevel(enum.IntEnum):
    """Logging level passed to log functions."""

    NONE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class NodeInfo:
    """Information about a single node."""

    id: int = 0
    address: str = ""
    role: NodeRole = NodeRole.VOTER

    def to_dict(self) -> dict[str, Any]:
        """Return the mapping used when persisting the node."""
        return {"ID": self.id, "Address": self.address, "Role": int(self.role)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeInfo:
        """Build a node from a persisted mapping."""
        if not isinstance(data, Mapping):
            raise ValueError(f"node entry must be a mapping, not {type(data).__name__}")
        return cls(
            id=int(data.get("ID", 0) or 0),
            address=str(data.get("Address", "") or ""),
            role=NodeRole(int(data.get("Role", 0) or 0)),
        )


@dataclass(frozen=True)
class NodeMetadata:
    """User-defined node-level metadata."""

    failure_domain: int = 0
    weight: int = 0


class NodeStore(Protocol):
    """Source of candidate nodes to dial when looking for a leader."""

    def get(self) -> list[NodeInfo]: ...

    def set(self, servers: Iterable[NodeInfo]) -> None: ...


def default_log_func(level: LogLevel, message: str, *args: Any) -> None:
    """Log function that emits nothing; it only checks that the level is valid."""
    LogLevel(level)
    return None


class InmemNodeStore:
    """Keeps the list of target nodes in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._servers: list[NodeInfo] = []

    def get(self) -> list[NodeInfo]:
        with self._lock:
            return list(self._servers)

    def set(self, servers: Iterable[NodeInfo]) -> None:
        with self._lock:
            self._servers = list(servers)


def _atomic_write(path: str, data: bytes, mode: int = 0o600) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class YamlNodeStore:
    """Persists the list of node addresses in a YAML file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._lock = threading.RLock()
        self._servers: list[NodeInfo] = []
        try:
            with open(self.path, "rb") as handle:
                content = yaml.safe_load(handle)
        except FileNotFoundError:
            return
        if content is None:
            return
        if not isinstance(content, list):
            raise ValueError(f"{self.path}: expected a list of nodes")
        self._servers = [NodeInfo.from_dict(entry) for entry in content]

    def get(self) -> list[NodeInfo]:
        with self._lock:
            return list(self._servers)

    def set(self, servers: Iterable[NodeInfo]) -> None:
        servers = list(servers)
        with self._lock:
            data = yaml.safe_dump(
                [server.to_dict() for server in servers], sort_keys=False
            ).encode()
            _atomic_write(self.path, data)
            self._servers = servers