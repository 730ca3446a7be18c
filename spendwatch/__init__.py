"""Budget threshold monitoring and alert dispatch service."""

__version__ = "0.1.0"
