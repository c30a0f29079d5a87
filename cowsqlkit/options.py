"""Application node options and their defaults."""

from __future__ import annotations

import ipaddress
import logging
import queue
import socket
import ssl
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import psutil

from .nodes import LogLevel

_logger = logging.getLogger("cowsqlkit")

DEFAULT_PORT = 9000


def default_log_func(level: LogLevel, message: str, *args: Any) -> None:
    """Log only error messages, through the standard logging module."""
    if level != LogLevel.ERROR:
        return
    text = message % args if args else message
    _logger.error("%s", f"[{level}] cowsql: {text}")


@dataclass
class AppOptions:
    """Tunable parameters of an application node.

    ``roles_adjustment_frequency`` and ``network_latency`` are in seconds.
    ``tls_listen`` and ``tls_dial`` are the contexts used for incoming and
    outgoing connections. ``external_dial`` and ``external_accept`` provide
    an external dial function and the queue receiving accepted connections.
    """

    address: str = ""
    cluster: list[str] = field(default_factory=list)
    log: Callable[..., None] = default_log_func
    tracing: LogLevel = LogLevel.NONE
    tls_listen: ssl.SSLContext | None = None
    tls_dial: ssl.SSLContext | None = None
    external_dial: Callable[[str], socket.socket] | None = None
    external_accept: queue.Queue | None = None
    voters: int = 3
    standbys: int = 3
    roles_adjustment_frequency: float = 30.0
    failure_domain: int = 0
    network_latency: float = 0.0
    unix_socket: str = ""
    snapshot_params: Any = None
    auto_recovery: bool = True


def is_ipv4(ip: str) -> bool:
    """Tell IPv4 notations (with or without port) from IPv6 ones."""
    return ip.count(":") < 2


def _ip_addresses(addresses) -> list[str]:
    return [
        entry.address.split("%", 1)[0]
        for entry in addresses
        if entry.family in (socket.AF_INET, socket.AF_INET6)
    ]


def _is_loopback(name: str, ips: list[str], stats) -> bool:
    flags = getattr(stats.get(name), "flags", "") or ""
    if "loopback" in flags.split(","):
        return True
    for ip in ips:
        try:
            if ipaddress.ip_address(ip).is_loopback:
                return True
        except ValueError:
            continue
    return False


def default_address() -> str:
    """Return the first non-loopback IP address of the system, with port 9000."""
    interfaces = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    for name, addresses in interfaces.items():
        ips = _ip_addresses(addresses)
        if _is_loopback(name, ips, stats) or not ips:
            continue
        ip = ips[0]
        if is_ipv4(ip):
            return f"{ip}:{DEFAULT_PORT}"
        return f"[{ip}]:{DEFAULT_PORT}"
    raise OSError("no suitable network interface found")