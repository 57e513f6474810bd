"""TableForge: service bootstrap and hook pipeline for a content backend."""

__version__ = "0.1.0"
