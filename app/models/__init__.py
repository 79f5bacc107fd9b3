from .competition import Competition
from .boulder import Boulder
from .profile import Profile
from .attempt import Attempt
from .validation_request import ValidationRequest

__all__ = [
    "Competition",
    "Boulder",
    "Profile",
    "Attempt",
    "ValidationRequest",
]
