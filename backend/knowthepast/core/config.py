from pydantic_settings import BaseSettings, SettingsConfigDict

from knowthepast.core.errors import ConfigurationError

class Settings(BaseSettings):
    LOGGER: int = 20

    # Generative service (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash"
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Map provider (Google Maps)
    MAPS_API_KEY: str = ""
    GEOCODING_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Upstream timeouts in seconds
    GENERATION_TIMEOUT: float = 30.0
    IMAGE_TIMEOUT: float = 60.0
    GEOCODING_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        # Look for .env in the current folder OR the parent folder
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

def validate_credentials(config: Settings) -> None:
    """
    Both credentials are required at startup. A missing one is fatal and
    keeps the affected subsystem from initializing.
    """
    missing = [
        name for name in ("GEMINI_API_KEY", "MAPS_API_KEY")
        if not getattr(config, name).strip()
    ]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

settings = Settings()
