from pydantic_settings import BaseSettings

from dotenv import load_dotenv

load_dotenv()  # load .env file

class Settings(BaseSettings):
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SESSION_TTL_SECONDS: int = 3600
    DEFAULT_CURRENCY: str = "EUR"
    ACCESS_TOKEN_COOKIE: str = "sb-access-token"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
