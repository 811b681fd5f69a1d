import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables"""

    project_name: str = os.getenv("PROJECT_NAME", "Blog API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "logs/app.log")

    # Service account certificate used to initialise the Firebase Admin SDK
    firebase_credentials: str = os.getenv("FIREBASE_CREDENTIALS", "./firebase.json")
    firebase_project_id: str = os.getenv("FIREBASE_PROJECT_ID", "")

    cors_origins: List[str] = field(
        default_factory=lambda: _split_origins(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
    )

    # 0 leaves the page size uncapped
    posts_max_limit: int = int(os.getenv("POSTS_MAX_LIMIT", "0"))

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
