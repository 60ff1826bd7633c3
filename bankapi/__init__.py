"""JSON REST server over a bank database for ATM terminals and a web client."""

__version__ = "0.1.0"

__all__ = [
    "accountdb",
    "announcedb",
    "announcelogdb",
    "atmlogdb",
    "clientdb",
    "database",
    "endpoints",
    "server",
]