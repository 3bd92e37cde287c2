"""Record store layer.

This module persists versioned asset records and their owner index.
It powers record mutations, predicate queries, and history playback.
"""
