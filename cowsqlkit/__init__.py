"""Node stores, role decisions, data-directory files, proxying, TLS and benchmark helpers for cowsql clusters."""

__version__ = "0.1.0"