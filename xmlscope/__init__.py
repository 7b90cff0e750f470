"""Event-driven XML parsing, with a chain of delegating scope handlers."""

__version__ = "1.0"
