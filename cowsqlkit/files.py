"""Small helpers for the state files kept in a node's data directory."""

from __future__ import annotations

import os
from typing import Any

import yaml

from .nodes import _atomic_write

# Stores the node ID and address.
INFO_FILE = "info.yaml"

# The node store file.
STORE_FILE = "cluster.yaml"

# Flag file signalling that a brand new node still has to join the cluster.
# If joining fails the first time the node is started, it is retried on the
# next start.
JOIN_FILE = "join"


def _wrapped(exc: OSError, prefix: str) -> OSError:
    if exc.errno is not None:
        return OSError(exc.errno, f"{prefix}: {exc.strerror}", exc.filename)
    return OSError(f"{prefix}: {exc}")


def file_exists(directory: str | os.PathLike[str], name: str) -> bool:
    """Return True if the given file exists in the given directory."""
    path = os.path.join(directory, name)
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise _wrapped(exc, f"check if {name} exists") from exc
    return True


def file_write(directory: str | os.PathLike[str], name: str, data: bytes) -> None:
    """Atomically write a file with mode 0600 in the given directory."""
    path = os.path.join(directory, name)
    try:
        _atomic_write(path, bytes(data), 0o600)
    except OSError as exc:
        raise _wrapped(exc, f"write {name}") from exc


def file_marshal(directory: str | os.PathLike[str], name: str, obj: Any) -> None:
    """Serialize the given object as YAML into the given file."""
    to_dict = getattr(obj, "to_dict", None)
    payload = to_dict() if callable(to_dict) else obj
    try:
        data = yaml.safe_dump(payload, sort_keys=False).encode()
    except yaml.YAMLError as exc:
        raise ValueError(f"marshall {name}: {exc}") from exc
    file_write(directory, name, data)


def file_unmarshal(directory: str | os.PathLike[str], name: str) -> Any:
    """Load and return the YAML content of the given file."""
    path = os.path.join(directory, name)
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise _wrapped(exc, f"read {name}") from exc
    try:
        return yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ValueError(f"unmarshall {name}: {exc}") from exc


def file_remove(directory: str | os.PathLike[str], name: str) -> None:
    """Remove a file in the given directory."""
    os.remove(os.path.join(directory, name))