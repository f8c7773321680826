"""State/store layer.

This package holds the topic-keyed sequence store and its collaborators:
the in-memory map, the restore gate, the lifecycle event bus and the
snapshot persistence adapter.
"""
