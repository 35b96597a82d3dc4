"""Content relationship graph and query engine for static content sites."""

__version__ = "0.1.0"
