"""Lorekeeper: a personal knowledge base you can chat with."""

__version__ = "0.1.0"
