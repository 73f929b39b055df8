from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Generated codes must satisfy the same 6-30 grammar as custom ones
    CODE_LENGTH: int = Field(6, ge=6, le=30)
    CODE_ATTEMPTS: int = Field(20, ge=1)

    CREATE_TABLES: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
