"""Agora: server-rendered discussion forum with a read-through response cache."""

__version__ = "0.1.0"
