"""Quest dependency graph and storyline progression engine."""

__version__ = "0.1.0"
