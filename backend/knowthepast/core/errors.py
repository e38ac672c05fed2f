"""
Error taxonomy shared by the services and routes.
"""


class KnowThePastError(Exception):
    """Base class for all application errors"""


class ConfigurationError(KnowThePastError):
    """A required credential is missing at startup"""


class GenerationError(KnowThePastError):
    """Structured-content call failed or returned unusable data"""


class RenderError(KnowThePastError):
    """Image call failed or returned no image part"""


class BoundaryResolutionError(KnowThePastError):
    """The map provider could not resolve a place id to a viewport"""
