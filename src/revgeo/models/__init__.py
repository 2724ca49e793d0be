"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from revgeo.models.base import Base
from revgeo.models.reverse_geocoding_location import ReverseGeocodingLocation

__all__ = [
    "Base",
    "ReverseGeocodingLocation",
]
