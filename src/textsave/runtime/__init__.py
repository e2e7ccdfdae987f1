"""Runtime services shared by the buffer and save layers."""

from . import telemetry

__all__ = ["telemetry"]
