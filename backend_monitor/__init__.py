"""Backend health monitor — probes configured endpoints and reports backend health."""

__version__ = "0.1.0"
