from __future__ import annotations


class ConfigLoadError(RuntimeError):
    """The service source could not be read; no schedules were created."""


class PersistenceError(RuntimeError):
    pass
