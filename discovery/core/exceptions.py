"""
Error taxonomy for the discovery engine.

Every error carries the message shown in the feed's error slot and whether
that message stays up until a later operation succeeds (``persistent``) or is
dismissed automatically.
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for all engine errors."""

    default_message = "Something went wrong"
    persistent = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(DiscoveryError):
    default_message = "Please sign in to continue"


class ProfileNotFound(DiscoveryError):
    default_message = "User profile not found"


class NetworkUnavailable(DiscoveryError):
    default_message = "No internet connection"
    persistent = True


class RepositoryError(DiscoveryError):
    default_message = "Request failed"


class SwipeNotAllowed(DiscoveryError):
    """Raised by the HTTP layer for undo requests the stack cannot honor."""

    default_message = "Nothing to undo"


def describe_error(error: BaseException, fallback: str) -> tuple[str, bool]:
    """
    Map an exception to the (message, persistent) pair shown to the user.

    Connectivity failures keep their own message and stay visible;
    fatal engine errors keep theirs; everything else collapses to ``fallback``.
    """
    if isinstance(error, NetworkUnavailable):
        return error.message, True
    if isinstance(error, (NotAuthenticated, ProfileNotFound)):
        return error.message, False
    return fallback, False
