"""
Core settings and environment variables for Kumbh Alert Hub.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """
    
    # Application
    APP_NAME: str = "Kumbh Alert Hub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"
    
    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    
    # Mock DB mode for local development and tests without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = None  # JSON snapshot file; None keeps the mock purely in memory
    
    # Credentials and sessions
    SESSION_TTL_DAYS: int = 30
    PASSWORD_HASH_ITERATIONS: int = 120_000
    
    # Entry-point registration
    VALID_QR_CODE_ID: str = "Kumbhbharat Registration"
    REGISTRATION_TIMEOUT_SECONDS: float = 5.0
    
    # Crowd analytics
    # low: people <= CROWD_LOW_MAX, moderate: <= CROWD_MODERATE_MAX, high: above
    CROWD_WINDOW_MINUTES: int = 60
    CROWD_LOW_MAX: int = 500
    CROWD_MODERATE_MAX: int = 1000
    
    # Person matching
    CANDIDATE_SUGGESTION_LIMIT: int = 5
    
    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra env vars to prevent crashes


# Global settings instance
settings = Settings()
