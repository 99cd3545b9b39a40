"""Resource monitoring of worker processes."""

from .resource_monitor import MonitorHandle, ResourceMonitor

__all__ = ["MonitorHandle", "ResourceMonitor"]
