from .user import User, UserRole
from .profile import Profile, ProfileMedia, MediaType
from .annonce import Annonce

__all__ = [
    "User", "UserRole",
    "Profile", "ProfileMedia", "MediaType",
    "Annonce",
]
