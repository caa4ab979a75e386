from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # подпись токенов кассира (cookie auth-token / Bearer)
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # realtime-релей (socket-процесс)
    RELAY_URL: str = "http://localhost:5001"
    RELAY_INTERNAL_SECRET: str = ""
    RELAY_TIMEOUT: float = 3.0

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"  # plain | json

    class Config:
        env_file = ".env"


settings = Settings()
