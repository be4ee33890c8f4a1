# config.py
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
  database_url: str
  auth_secret: str
  db_pool_size: int = Field(default=5, ge=1)
  db_max_overflow: int = Field(default=10, ge=0)
  db_echo: bool = False
  bcrypt_rounds: int = Field(default=10, ge=4, le=31)
  session_ttl_minutes: int = Field(default=60 * 24, ge=1)
  cors_origins: List[str] = Field(default_factory=list)
  log_level: str = "INFO"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
  value = os.getenv(name, "").strip()
  return value or default


def normalize_database_url(url: str) -> str:
  # hosted postgres providers hand out libpq style urls
  if url.startswith("postgres://"):
    return "postgresql+asyncpg://" + url[len("postgres://"):]
  if url.startswith("postgresql://"):
    return "postgresql+asyncpg://" + url[len("postgresql://"):]
  return url


def load_settings() -> Settings:
  load_dotenv()

  database_url = _env("DATABASE_URL")
  if not database_url:
    raise RuntimeError("DATABASE_URL is not set in backend .env")

  auth_secret = _env("AUTH_SECRET")
  if not auth_secret:
    raise RuntimeError("AUTH_SECRET is not set in backend .env")

  return Settings(
    database_url=normalize_database_url(database_url),
    auth_secret=auth_secret,
    db_pool_size=_env("DB_POOL_SIZE", "5"),
    db_max_overflow=_env("DB_MAX_OVERFLOW", "10"),
    db_echo=_env("DB_ECHO", "false").lower() in ("1", "true", "yes"),
    bcrypt_rounds=_env("BCRYPT_ROUNDS", "10"),
    session_ttl_minutes=_env("SESSION_TTL_MINUTES", str(60 * 24)),
    cors_origins=[
      x.strip()
      for x in _env("CORS_ORIGINS", "http://127.0.0.1:3000,http://localhost:3000").split(",")
      if x.strip()
    ],
    log_level=_env("LOG_LEVEL", "INFO").upper(),
  )
