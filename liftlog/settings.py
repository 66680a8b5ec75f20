from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./liftlog.db"
    default_user_id: str = "local"  # used when no X-User-Id header is sent
    log_level: str = "INFO"
    weight_increment: float = 0.5

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
