"""Test fixtures for SafeReport tests.

Provides:
- An in-memory report store with call counting and fault injection
- Recording alert scheduler and observer
- Sample registered people and directory entries
"""

from .reports import *
