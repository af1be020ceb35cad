"""Question answering over the art collection with a response cache and request metrics."""

__version__ = "1.0.0"
