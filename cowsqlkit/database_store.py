"""Node store kept in a SQLite table."""

from __future__ import annotations

import os
import sqlite3
import threading
from collections.abc import Iterable

from .nodes import NodeInfo, NodeStore, YamlNodeStore


class NodeStoreError(Exception):
    """Raised when the node store cannot be read or written."""


class DatabaseNodeStore:
    """Persists a list of node addresses in a SQL table."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        schema: str,
        table: str,
        column: str,
        where: str = "",
    ) -> None:
        self._connection = connection
        self.schema = schema
        self.table = table
        self.column = column
        self.where = where
        self._lock = threading.Lock()

    def get(self) -> list[NodeInfo]:
        query = f"SELECT {self.column} FROM {self.schema}.{self.table}"
        if self.where:
            query += " WHERE " + self.where
        with self._lock:
            try:
                rows = self._connection.execute(query).fetchall()
            except sqlite3.Error as exc:
                raise NodeStoreError(f"failed to query servers table: {exc}") from exc
        servers = []
        for (address,) in rows:
            if not isinstance(address, str):
                raise NodeStoreError(f"failed to fetch server address: {address!r}")
            servers.append(NodeInfo(id=1, address=address))
        return servers

    def set(self, servers: Iterable[NodeInfo]) -> None:
        delete = f"DELETE FROM {self.schema}.{self.table}"
        insert = f"INSERT INTO {self.schema}.{self.table}({self.column}) VALUES (?)"
        conn = self._connection
        with self._lock:
            try:
                conn.execute("BEGIN")
            except sqlite3.Error as exc:
                raise NodeStoreError(f"failed to begin transaction: {exc}") from exc
            try:
                try:
                    conn.execute(delete)
                except sqlite3.Error as exc:
                    raise NodeStoreError(
                        f"failed to delete existing servers rows: {exc}"
                    ) from exc
                for server in servers:
                    try:
                        conn.execute(insert, (server.address,))
                    except sqlite3.Error as exc:
                        raise NodeStoreError(
                            f"failed to insert server {server.address}: {exc}"
                        ) from exc
            except BaseException:
                conn.rollback()
                raise
            try:
                conn.commit()
            except sqlite3.Error as exc:
                raise NodeStoreError(f"failed to commit transaction: {exc}") from exc


def default_node_store(filename: str | os.PathLike[str]) -> NodeStore:
    """Open a node store for the given file.

    Files ending in ".yaml" use the YAML store; anything else is opened as a
    SQLite database holding a "servers" table, created if missing.
    """
    filename = os.fspath(filename)
    if filename.endswith(".yaml"):
        return YamlNodeStore(filename)
    try:
        conn = sqlite3.connect(filename, isolation_level=None, check_same_thread=False)
    except sqlite3.Error as exc:
        raise NodeStoreError(f"failed to open database: {exc}") from exc
    try:
        conn.execute("CREATE TABLE IF NOT EXISTS servers (address TEXT, UNIQUE(address))")
    except sqlite3.Error as exc:
        conn.close()
        raise NodeStoreError(f"failed to create servers table: {exc}") from exc
    return DatabaseNodeStore(conn, "main", "servers", "address")