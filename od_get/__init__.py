"""od-get: mirror Apache-style open directories with resumable downloads."""

__version__ = "0.4.0"
