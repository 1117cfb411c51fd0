"""Exceptions raised by the route ordering engine."""


class RouteError(Exception):
    """Base class for all route engine failures."""


class InvalidCoordinate(RouteError, ValueError):
    pass


class EmptyInput(RouteError, ValueError):
    pass


class EmptyTour(RouteError, ValueError):
    pass


class DuplicateStop(RouteError, ValueError):
    pass


class NotFound(RouteError, LookupError):
    pass


class StaleTourError(RouteError):
    """Raised when a mutation was computed against an outdated tour version."""
