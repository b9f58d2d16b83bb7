"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "FieldMap"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Export file naming: <basename>-export.json, <basename>.kml, <basename>.gpx
    export_basename: str = "fieldmap"

    # Circles have no native KML/GPX primitive; they are written as rings
    circle_segments: int = 64

    # GPX routes whose endpoints differ by less than this (degrees, both axes)
    # are read back as polygons.  1e-6 deg is ~0.11 m at the equator.
    closed_ring_epsilon: float = 1e-6

    # Name of the KML <Data> entry / GPX <extensions> child holding app metadata
    meta_key: str = "app_meta"


settings = Settings()
