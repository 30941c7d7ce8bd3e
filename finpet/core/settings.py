# finpet/core/settings.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Financial Pet"
    API_V1_STR: str = "/api/v1"

    # "file", "memory" or "mongo"
    STORE_BACKEND: str = "file"
    PROFILE_STORE_PATH: str = "data/pet_profile.json"
    PROFILE_STORAGE_KEY: str = "ascendiaLitePetProfile"
    DEFAULT_USER_ID: str = "defaultUser"

    # Only read when STORE_BACKEND == "mongo"
    MONGO_CONNECTION_URI: Optional[str] = None
    MONGO_DATABASE_NAME: str = "finpet"
    MONGO_COLLECTION_NAME: str = "kv_store"

    DECAY_CHECK_INTERVAL_SECONDS: int = 900  # 15 minutes
    LOG_LEVEL: str = "INFO"
    ENV_TYPE: str = "dev"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore",
                                      case_sensitive=False)  # case_sensitive=False for env vars


settings = Settings()
