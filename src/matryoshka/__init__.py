"""Matryoshka: relay directory with heartbeat-driven liveness."""

__version__ = '0.1.0'
