"""TeamSync - team task and project management service."""

__version__ = "0.1.0"
