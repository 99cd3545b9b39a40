"""Injected output sinks."""

from .sinks import CapturingOutputSink, LoggingOutputSink, NullOutputSink, StreamOutputSink

__all__ = [
    "CapturingOutputSink",
    "LoggingOutputSink",
    "NullOutputSink",
    "StreamOutputSink",
]
