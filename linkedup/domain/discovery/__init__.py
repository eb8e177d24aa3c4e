"""Discovery domain exports."""

from .geo import EARTH_RADIUS_KM, LatLng, filter_by_radius, haversine_km
from .models import CandidateProfile
from .service import DiscoveryFeed, NearbyView

__all__ = [
	"EARTH_RADIUS_KM",
	"CandidateProfile",
	"DiscoveryFeed",
	"LatLng",
	"NearbyView",
	"filter_by_radius",
	"haversine_km",
]
