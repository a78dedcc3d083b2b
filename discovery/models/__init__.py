from .profile import Profile
from .swipe import Swipe
from .match import Match

__all__ = ["Profile", "Swipe", "Match"]
