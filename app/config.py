"""
Configuration settings for the Newspaper Backend
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Server Configuration
    APP_NAME: str = "Newspaper Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Firebase / Firestore Configuration
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_CREDENTIALS_PATH: str = "./firebase-credentials.json"
    # Support for raw JSON credentials (env var)
    FIREBASE_CREDENTIALS_JSON: str = ""
    FIREBASE_EMULATOR_HOST: str = ""
    FIRESTORE_DATABASE: str = "(default)"
    DEV_MODE: bool = False

    # Collection names
    USERS_COLLECTION: str = "users"
    PUBLISHERS_COLLECTION: str = "publishers"
    ARTICLES_COLLECTION: str = "articles"

    # CORS Configuration - any origin by default
    ALLOWED_ORIGINS: str = "*"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Convert comma-separated origins to list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    model_config = {"env_file": ".env",
                    "case_sensitive": True, "extra": "allow"}


# Global settings instance
settings = Settings()
