"""
Shades engine exceptions
"""


class ShadesError(Exception):
    """Base class for every error raised by the engine"""


class PlacementError(ShadesError, ValueError):
    """Caller broke a precondition; the grid was not touched"""


class InvariantError(ShadesError, RuntimeError):
    """The engine produced a board it should never produce"""
