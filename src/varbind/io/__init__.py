"""Persistence hooks: stores and scenes as plain JSON/YAML records."""

from .serialization import Document, dump_store, load_document, load_store, save_document

__all__ = ["Document", "dump_store", "load_document", "load_store", "save_document"]
