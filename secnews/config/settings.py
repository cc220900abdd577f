"""Configuration settings for the secnews aggregator."""

from pathlib import Path

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Cache
    cache_ttl: int = 900  # 15 minutes
    cache_check_period: int = 120  # Sweep expired keys every 2 minutes

    # Feed fetching
    fetch_timeout: float = 10.0

    # Paths
    package_dir: Path = Path(__file__).parent.parent
    config_dir: Path = package_dir / "config"
    sources_file: Path = config_dir / "sources.yaml"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    class Config:
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
