"""Create the reverse_geocoding_locations cache table.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

import geoalchemy2  # noqa: F401
import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "reverse_geocoding_locations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "request_coordinates",
            geoalchemy2.types.Geometry(
                geometry_type="POINT", srid=4326, from_text="ST_GeomFromEWKT", spatial_index=False
            ),
            nullable=False,
        ),
        sa.Column(
            "result_coordinates",
            geoalchemy2.types.Geometry(
                geometry_type="POINT", srid=4326, from_text="ST_GeomFromEWKT", spatial_index=False
            ),
            nullable=False,
        ),
        sa.Column(
            "bounding_box",
            geoalchemy2.types.Geometry(
                geometry_type="POLYGON", srid=4326, from_text="ST_GeomFromEWKT", spatial_index=False
            ),
            nullable=False,
        ),
        sa.Column("display_name", sa.String(1000), nullable=False),
        sa.Column("city", sa.String(200), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("provider_name", sa.String(50), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "last_accessed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rgl_request_coordinates",
        "reverse_geocoding_locations",
        ["request_coordinates"],
        postgresql_using="gist",
    )
    op.create_index(
        "ix_rgl_result_coordinates",
        "reverse_geocoding_locations",
        ["result_coordinates"],
        postgresql_using="gist",
    )
    op.create_index(
        "ix_rgl_bounding_box",
        "reverse_geocoding_locations",
        ["bounding_box"],
        postgresql_using="gist",
    )
    op.create_index("ix_rgl_created_at", "reverse_geocoding_locations", ["created_at"])
    op.create_index("ix_rgl_last_accessed_at", "reverse_geocoding_locations", ["last_accessed_at"])
    op.create_index("ix_rgl_provider_name", "reverse_geocoding_locations", ["provider_name"])


def downgrade() -> None:
    op.drop_index("ix_rgl_provider_name", table_name="reverse_geocoding_locations")
    op.drop_index("ix_rgl_last_accessed_at", table_name="reverse_geocoding_locations")
    op.drop_index("ix_rgl_created_at", table_name="reverse_geocoding_locations")
    op.drop_index("ix_rgl_bounding_box", table_name="reverse_geocoding_locations")
    op.drop_index("ix_rgl_result_coordinates", table_name="reverse_geocoding_locations")
    op.drop_index("ix_rgl_request_coordinates", table_name="reverse_geocoding_locations")
    op.drop_table("reverse_geocoding_locations")
