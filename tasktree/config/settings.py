"""
Application settings and configuration
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables"""
    
    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_TO_FILE: bool = _env_flag("LOG_TO_FILE")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    
    # Web server
    WEB_HOST: str = os.getenv("WEB_HOST", "0.0.0.0")
    WEB_PORT: int = int(os.getenv("WEB_PORT", "8000"))
    
    # Identity: without proxy headers, requests run as this user in dev mode
    DEV_MODE: bool = _env_flag("DEV_MODE") or os.getenv("ENVIRONMENT", "") == "development"
    DEV_USER_ID: str = os.getenv("DEV_USER_ID", "dev-user-123")
    DEV_USER_NAME: str = os.getenv("DEV_USER_NAME", "Developer User")
    
    @classmethod
    def validate(cls) -> bool:
        """Validate that settings hold usable values"""
        problems = []
        
        if not 0 < cls.WEB_PORT < 65536:
            problems.append(f"WEB_PORT={cls.WEB_PORT}")
        if cls.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            problems.append(f"LOG_LEVEL={cls.LOG_LEVEL}")
        if cls.DEV_MODE and not cls.DEV_USER_ID:
            problems.append("DEV_USER_ID is empty while DEV_MODE is on")
        
        if problems:
            raise ValueError(
                f"Invalid settings: {', '.join(problems)}"
            )
        
        return True


# Global settings instance
settings = Settings()
