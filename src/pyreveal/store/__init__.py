"""Geometry store implementations.

Every store satisfies :class:`~pyreveal.store.base.GeometryStore`: async
reads and writes of one scope's revealed area and location history.
"""

from pyreveal.store.base import GeometryStore
from pyreveal.store.http import HttpGeometryStore
from pyreveal.store.memory import InMemoryGeometryStore
from pyreveal.store.sqlite import SqliteGeometryStore

__all__ = [
    "GeometryStore",
    "HttpGeometryStore",
    "InMemoryGeometryStore",
    "SqliteGeometryStore",
]
