"""Generic REST CRUD backend for document collections."""

__version__ = "0.1.0"
