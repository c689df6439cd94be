"""A lightweight TCP server framework with message framing, routing and a worker pool."""

__version__ = "0.4.0"