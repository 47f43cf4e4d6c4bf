"""RAG admin service: projects, indexes and a vector-store demo API."""

__version__ = "1.2.0"
