"""Identity domain exports."""

from .models import CATALOG, PreferenceCatalog, UserProfile
from .service import ProfileService

__all__ = ["CATALOG", "PreferenceCatalog", "ProfileService", "UserProfile"]
