"""Runtime settings, read from the environment (and a local .env file)."""

from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    # Catalog (empty = packaged sample catalog)
    CATALOG_PATH: str = os.getenv("CATALOG_PATH", "")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    CORS_ORIGINS: list[str] = _split(os.getenv("CORS_ORIGINS", "*"))

    # Autocomplete / search limits
    SEGMENT_SUGGESTION_LIMIT: int = int(os.getenv("SEGMENT_SUGGESTION_LIMIT", "20"))
    BASE_SUGGESTION_LIMIT: int = int(os.getenv("BASE_SUGGESTION_LIMIT", "8"))
    SKU_RESULT_LIMIT: int = int(os.getenv("SKU_RESULT_LIMIT", "10"))

settings = Settings()
