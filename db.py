# db.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import Settings
from exceptions import StoreError
import models  # noqa: F401  registers the tables on SQLModel.metadata

logger = logging.getLogger(__name__)


class ConnectionManager:
  """Pooled access to the relational store.

  Holds no entity state. Each logical operation acquires one session,
  works inside it and releases it on every exit path. `connection()` is the
  scoped form of acquire/release and is what the services use.
  """

  def __init__(self, engine: AsyncEngine):
    self.engine = engine
    self._sessions = async_sessionmaker(
      engine,
      class_=AsyncSession,
      autoflush=False,
      expire_on_commit=False,
    )

  @classmethod
  def from_settings(cls, settings: Settings) -> "ConnectionManager":
    return cls.from_url(
      settings.database_url,
      pool_size=settings.db_pool_size,
      max_overflow=settings.db_max_overflow,
      echo=settings.db_echo,
    )

  @classmethod
  def from_url(
    cls,
    url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
  ) -> "ConnectionManager":
    # hide_parameters keeps bound values (password hashes) out of error text and logs
    kwargs = {"echo": echo, "pool_pre_ping": True, "hide_parameters": True}
    if not url.startswith("sqlite"):
      kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
    return cls(create_async_engine(url, **kwargs))

  async def acquire(self) -> AsyncSession:
    return self._sessions()

  async def release(self, session: AsyncSession) -> None:
    await session.close()

  @asynccontextmanager
  async def connection(self) -> AsyncIterator[AsyncSession]:
    session = await self.acquire()
    try:
      yield session
    finally:
      await self.release(session)

  @asynccontextmanager
  async def transaction(self, failure: str) -> AsyncIterator[AsyncSession]:
    """begin -> work -> commit; rollback on failure.

    Store errors are logged in full and re-raised as StoreError(failure),
    so callers only ever see the generic message.
    """
    async with self.connection() as session:
      try:
        async with session.begin():
          yield session
      except SQLAlchemyError as e:
        logger.exception(f"Database error: {failure}")
        raise StoreError(failure, conflict=isinstance(e, IntegrityError))

  async def init_db(self) -> None:
    async with self.engine.begin() as conn:
      await conn.run_sync(SQLModel.metadata.create_all)

  async def dispose(self) -> None:
    await self.engine.dispose()

