"""Provider health tracking: failure blacklist and endpoint latency probes."""

__version__ = "1.0.0"
