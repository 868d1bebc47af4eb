"""
Custom exceptions for Simulive operations.

Failures inside the synchronization core are local and never fatal to a
viewing session. Collaborators report their failures with the subclasses
below.
"""


class SimuliveError(Exception):
    """Base exception for all Simulive errors."""

    pass


class ValidationError(SimuliveError):
    """Raised when input validation fails."""

    pass


class ConflictError(SimuliveError):
    """Raised when a unique field (e.g. a stream slug) is already taken."""

    pass


class NotFoundError(SimuliveError):
    """Raised when a requested record does not exist."""

    pass


class ResourceError(SimuliveError):
    """Raised when an external resource is not available or not configured."""

    pass


class AssetLookupError(ResourceError):
    """Raised when the video asset provider cannot resolve an asset."""

    pass


class TokenIssuanceError(ResourceError):
    """Raised when signed playback tokens cannot be obtained."""

    pass


class ClockUnreachableError(ResourceError):
    """Raised when the clock endpoint cannot be reached or answers garbage."""

    pass


class AuthenticationError(SimuliveError):
    """Raised when a caller is not authorized for an administrative action."""

    pass
