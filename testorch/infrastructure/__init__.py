"""Infrastructure Layer - storage, monitoring, framework adapters and output sinks."""
