"""Domain layer: ports, state machines and error taxonomy."""
