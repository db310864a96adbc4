"""Lazily paginated collections over Podio query endpoints."""

from .item_filter import FilterWindow, ItemFilterIterator

__all__ = ["FilterWindow", "ItemFilterIterator"]
