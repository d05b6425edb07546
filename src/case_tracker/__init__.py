"""Case tracker service: case lifecycle and audit trail engine."""

__version__ = "1.0.0"
