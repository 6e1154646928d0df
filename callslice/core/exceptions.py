"""Callslice custom exceptions."""


class CallsliceError(Exception):
    """Base exception for Callslice errors."""


class ConfigError(CallsliceError):
    """Invalid parameter or parameter combination."""


class InputError(CallsliceError):
    """Graph source is missing or cannot be parsed."""


class SymbolNotFoundError(CallsliceError):
    """Requested symbol doesn't exist in the graph."""


class EmptyResultError(CallsliceError):
    """Filters eliminated the entire subgraph for a root."""


class RenderError(CallsliceError):
    """The layout engine is unavailable or failed."""


class ResourceError(CallsliceError):
    """Temporary storage or request channel I/O failed."""
