"""Metadata store access and work-queue coordination for a telemetry data lake."""

__version__ = "0.1.0"