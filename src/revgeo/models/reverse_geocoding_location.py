"""ReverseGeocodingLocation model — spatially indexed cache of reverse geocoding results."""

from datetime import datetime

from geoalchemy2 import Geometry
from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from revgeo.models.base import Base, UUIDMixin


class ReverseGeocodingLocation(Base, UUIDMixin):
    """A provider result cached for a request coordinate and valid over its bounding box."""

    __tablename__ = "reverse_geocoding_locations"

    request_coordinates: Mapped[object] = mapped_column(
        Geometry(geometry_type="POINT", srid=4326, spatial_index=False), nullable=False
    )
    result_coordinates: Mapped[object] = mapped_column(
        Geometry(geometry_type="POINT", srid=4326, spatial_index=False), nullable=False
    )
    bounding_box: Mapped[object] = mapped_column(
        Geometry(geometry_type="POLYGON", srid=4326, spatial_index=False), nullable=False
    )
    display_name: Mapped[str] = mapped_column(String(1000), nullable=False)
    city: Mapped[str | None] = mapped_column(String(200), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_name: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_accessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_rgl_request_coordinates", "request_coordinates", postgresql_using="gist"),
        Index("ix_rgl_result_coordinates", "result_coordinates", postgresql_using="gist"),
        Index("ix_rgl_bounding_box", "bounding_box", postgresql_using="gist"),
        Index("ix_rgl_created_at", "created_at"),
        Index("ix_rgl_last_accessed_at", "last_accessed_at"),
        Index("ix_rgl_provider_name", "provider_name"),
    )
