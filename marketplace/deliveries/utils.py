"""
Calcul de distance orthodromique (formule de haversine).
"""
import math

from marketplace.deliveries.config import EARTH_RADIUS_KM
from marketplace.deliveries.exceptions import InvalidCoordinatesException


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance en kilomètres entre deux points donnés en degrés."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90:
        raise InvalidCoordinatesException(f"Latitude hors limites [-90, 90] : {latitude}")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinatesException(f"Longitude hors limites [-180, 180] : {longitude}")
