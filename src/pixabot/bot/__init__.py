"""Chat-facing logic: update routing, pagination and polling."""

from .dispatcher import UpdateDispatcher
from .pagination import PaginationController
from .polling import UpdatePoller

__all__ = [
    "PaginationController",
    "UpdateDispatcher",
    "UpdatePoller",
]
