"""
Exceptions raised while building a simulation
"""


class LineFollowerError(Exception):
    """Base class for all simulation construction errors"""


class GeometryError(LineFollowerError, ValueError):
    """A track or segment is degenerate or does not close into a loop"""


class ConfigurationError(LineFollowerError, ValueError):
    """Invalid timing, sensor or robot configuration"""
