"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBClient, Item, Page

__all__ = ["DynamoDBClient", "Item", "Page"]
