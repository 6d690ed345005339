"""CRUD package exports with lazy module loading.

One module per entity; services receive a db session and go through these
helpers instead of building queries inline.
"""

from importlib import import_module

__all__ = ["base", "user", "chat", "message", "session", "skill", "progress"]


def __getattr__(name):
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
