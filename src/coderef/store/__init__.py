"""SQLite persistence for references, change events and document links."""

from coderef.store.database import Database
from coderef.store.repository import ReferenceStore

__all__ = ["Database", "ReferenceStore"]
