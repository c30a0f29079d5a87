# cowsqlkit

Building blocks for applications that run on a cowsql cluster.

| Module | What it holds |
| --- | --- |
| `cowsqlkit.nodes` | `NodeRole`, `NodeInfo`, `NodeMetadata`, `LogLevel`, `InmemNodeStore`, `YamlNodeStore`, `default_log_func` |
| `cowsqlkit.database_store` | `DatabaseNodeStore`, `NodeStoreError`, `default_node_store` |
| `cowsqlkit.roles` | `RolesConfig`, `RolesChanges` |
| `cowsqlkit.files` | helpers for a node's data directory: `file_exists`, `file_write`, `file_marshal`, `file_unmarshal`, `file_remove` |
| `cowsqlkit.options` | `AppOptions`, `is_ipv4`, `default_address`, `default_log_func` |
| `cowsqlkit.proxy` | `proxy`, `ProxyError`, `set_keepalive`, `socketpair`, `make_node_dial_func`, `ext_dial_func_with_proxy` |
| `cowsqlkit.tls` | `simple_tls_config`, `simple_listen_tls_config`, `simple_dial_tls_config`, `DialTLSConfig` |
| `cowsqlkit.tracker` | `Work`, `Tracker`, `Report`, `Measurement`, `MeasurementError`, `dur_to_ms` |
| `cowsqlkit.benchmark_options` | `Workload`, `BenchmarkOptions`, `parse_workload` |
| `cowsqlkit.worker` | `Worker`, `WorkerType`, `create_workers`, `rand_seq`, `report_name`, `report_files`, `write_reports` |

Install with `pip install .`. To install with the test extra, use `pip install .[test]`.

## Node stores

A node store holds the list of cluster nodes that a client dials to find the leader. Every store has two methods:

- `get()` returns a copy of the list.
- `set(servers)` replaces the list.

The stores are:

- `InmemNodeStore` keeps the list in memory.
- `YamlNodeStore(path)` keeps the list in a YAML file. It writes the file atomically, with mode 0600. If the file does not exist yet, the store starts empty.
- `DatabaseNodeStore(connection, schema, table, column, where)` keeps the addresses in a column of an SQLite table.
  - An optional `where` clause filters what `get()` reads.
  - Every node it returns has ID 1.
  - `set()` runs in one transaction. On failure it rolls back and raises `NodeStoreError`, so the stored list is unchanged.

`default_node_store(filename)` picks a store from the file name:

- A name ending in `.yaml` gives a `YamlNodeStore`.
- Any other name is opened as an SQLite database, which can be `":memory:"`. The result is a `DatabaseNodeStore` over a `servers` table, created if it is missing.

```python
from cowsqlkit.nodes import NodeInfo, YamlNodeStore

store = YamlNodeStore("cluster.yaml")
store.set([NodeInfo(id=1, address="127.0.0.1:9001")])
print(store.get())
```

## Roles

`RolesChanges(config, state)` decides which node should be a voter, a stand-by or a spare.

- `config` is a `RolesConfig`. By default it asks for 3 voters and 3 stand-bys.
- `state` maps every `NodeInfo` to its `NodeMetadata`, or to `None` when the node is offline.

It has three decision methods:

- `assume(node_id)` returns the role that a node which has just started should take, or `None`.
- `handover(node_id)` returns `(role, candidates)` for a node that is shutting down.
- `adjust(leader)` returns `(role, candidates)` for the next change the leader should make.

When there is nothing to do, the role is `None` and the list of candidates is empty. Candidates are ordered as follows:

1. Candidates outside the failure domains already covered come first.
2. Within that, lower weights come first.

`list(role, online)` and `count(role, online)` query the state.

```python
from cowsqlkit.nodes import NodeInfo, NodeMetadata, NodeRole
from cowsqlkit.roles import RolesChanges, RolesConfig

state = {
    NodeInfo(id=1, address="a:9000", role=NodeRole.VOTER): NodeMetadata(failure_domain=0),
    NodeInfo(id=2, address="b:9000", role=NodeRole.VOTER): NodeMetadata(failure_domain=1),
    NodeInfo(id=3, address="c:9000", role=NodeRole.SPARE): NodeMetadata(failure_domain=2),
}
changes = RolesChanges(config=RolesConfig(voters=3, standbys=3), state=state)
print(changes.assume(3))  # voter
```

## Data directory files

`cowsqlkit.files` names three files:

- `INFO_FILE` is `info.yaml`.
- `STORE_FILE` is `cluster.yaml`.
- `JOIN_FILE` is `join`.

Its helpers work on files inside a given directory:

- `file_write` writes a file atomically, with mode 0600.
- `file_marshal` writes any object as YAML. It calls the object's `to_dict()` if it has one.
- `file_unmarshal` returns the YAML content of a file.
- `file_exists` and `file_remove` check for and delete a file.

## Options

`AppOptions` is a dataclass of node settings. Its defaults are:

| Setting | Default |
| --- | --- |
| `voters` | 3 |
| `standbys` | 3 |
| `roles_adjustment_frequency` | 30 s |
| `auto_recovery` | on |
| `tracing` | off |

Other helpers in `cowsqlkit.options`:

- `default_address()` returns the first IP address that is not a loopback address, with port 9000. IPv6 addresses are written in brackets. If there is no such address, it raises `OSError`.
- `default_log_func` passes only error-level messages to the `cowsqlkit` logger.

## Networking

`proxy(remote, local, stop=None, context=None)` copies data in both directions between a remote socket and a local unix socket.

- It returns when either side closes its connection, or when the `threading.Event` `stop` is set.
- It raises `ProxyError` if copying failed in either direction.
- It tunes TCP keepalive on TCP sockets through `set_keepalive`.
- If `context` is given, it wraps the remote socket in TLS.

Two functions return dial functions. A dial function takes an address and returns a socket. In both cases the returned socket is one end of a unix `socketpair()`, and the other end is proxied to the remote connection:

- `make_node_dial_func(stop, context)` returns one that dials TCP and TLS.
- `ext_dial_func_with_proxy(stop, dial_func)` returns one that wraps another dial function.

## TLS

These functions build `ssl.SSLContext` objects from a certificate file, a key file and an optional CA file. All of them require TLS 1.2 or later.

- `simple_listen_tls_config` builds the server side and requires client certificates.
- `simple_dial_tls_config` builds the client side and returns a `DialTLSConfig`.
  - Its `server_name` is the certificate's first DNS name.
  - A certificate without DNS names raises `ValueError`.
- `simple_tls_config` returns the pair `(listen, dial)`.

## Benchmark workers and reports

`create_workers(BenchmarkOptions(...))` builds workers for the workload:

- `parse_workload("kvwrite")` selects writes only.
- `parse_workload("kvreadwrite")` selects random reads and writes.

Each `Worker` runs statements on a DB-API connection, such as `sqlite3`, against the `model` table created by `KV_SCHEMA`. Each run is timed by its `Tracker`:

- `do_work(connection)` runs one statement.
- `run(connection, stop)` keeps running statements until `stop` is set.

```python
import sqlite3, threading
from cowsqlkit.benchmark_options import BenchmarkOptions
from cowsqlkit.worker import KV_SCHEMA, create_workers, write_reports

conn = sqlite3.connect("bench.db")
conn.execute(KV_SCHEMA)
workers = create_workers(BenchmarkOptions(workers=1))
for _ in range(100):
    workers[0].do_work(conn)
print(write_reports(".", workers))
```

`Tracker.report()` summarises each kind of work in a `Report`. A report counts operations and errors, and gives the average, maximum and minimum duration. Its text form shows durations in milliseconds.

`write_reports(directory, workers)` writes one file per worker and per kind of work into `directory/results`. Each file is named `<worker>-<work>-<unix timestamp>`. It returns the path of the `results` folder.

## What this package does not do

This package has no node engine, and it does not speak the cluster's wire protocol. It cannot start a node, find a leader, or send requests such as add, assign or transfer.

Role decisions, proxies and stores are provided for an application to wire up. The package has no application object that drives them, no benchmark runner that waits for the cluster to come online, and no command-line tools or interactive shell.