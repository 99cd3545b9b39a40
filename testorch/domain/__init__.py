"""Domain layer - models, interfaces and the error taxonomy."""
