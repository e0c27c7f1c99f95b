"""
Sight-reading trainer core.

Contains the seeded score generator, the note matching engine, and the
session accounting built on top of them.
"""

__all__ = [
    "generator",
    "matching",
    "session",
]
