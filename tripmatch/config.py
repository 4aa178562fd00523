"""
Matching Service Configuration
Loads settings from environment variables
"""

import os
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment"""

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_ENV: str = os.getenv("API_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Configuration
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")

    # Backends: "memory" for local development, "redis" / "mongo" in production
    SESSION_BACKEND: str = os.getenv("SESSION_BACKEND", "memory")
    CATALOG_BACKEND: str = os.getenv("CATALOG_BACKEND", "memory")
    CATALOG_DATA_DIR: str = os.getenv("CATALOG_DATA_DIR", "data/mock")

    # Redis Configuration (conversion sessions)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "720"))

    # MongoDB Configuration (catalog + bookings)
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB: str = os.getenv("MONGO_DB", "tripmatch")

    # Matching defaults
    MATCHING_DEFAULT_ALGORITHM: str = os.getenv("MATCHING_DEFAULT_ALGORITHM", "hybrid")
    MATCHING_MAX_RESULTS: int = int(os.getenv("MATCHING_MAX_RESULTS", "10"))
    MATCHING_MIN_SCORE: int = int(os.getenv("MATCHING_MIN_SCORE", "40"))

    # Automatic conversions run a stricter matching pass
    AUTO_MATCH_MAX_RESULTS: int = int(os.getenv("AUTO_MATCH_MAX_RESULTS", "5"))
    AUTO_MATCH_MIN_SCORE: int = int(os.getenv("AUTO_MATCH_MIN_SCORE", "60"))

    # Pricing
    PRICING_TARGET_MARGIN: float = float(os.getenv("PRICING_TARGET_MARGIN", "0.25"))

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def redis_url(self) -> str:
        """Get Redis connection URL"""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Global settings instance
settings = Settings()
