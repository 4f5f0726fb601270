"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOURCES = [
    "filmoteca",
    "zumzeig",
    "renoir",
    "verdi",
    "mooby-aribau",
    "mooby-balmes",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # TMDb API (an empty key disables enrichment)
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"
    tmdb_poster_size: str = "w500"

    # Snapshot cache
    data_dir: str = "data"
    cache_max_age_hours: float | None = None

    # Scraping settings
    scrape_timeout: int = 30
    detail_page_delay: float = 0.2
    enrichment_delay: float = 0.25

    enabled_sources: list[str] = DEFAULT_SOURCES

    log_level: str = "INFO"


# Global settings instance
settings = Settings()
