# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Environment defaults are set before any project import: main.py builds the
# app (and reads settings) at import time.
#
# Each test gets its own sqlite file so the pooled connections of one test
# all see the same data.
# =============================================================================

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")
os.environ.setdefault("AUTH_SECRET", "test-auth-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date

import pytest

from config import Settings
from db import ConnectionManager
from main import build_services
from models import Customer, Invoice, Revenue

LEE_ID = "3958dc9e-742f-4377-85e9-fec4b6a6442a"
DELBA_ID = "3958dc9e-712f-4377-85e9-fec4b6a6442a"
AMY_ID = "cc27c14a-0acf-4f4a-a6c9-d45682c144b9"


@pytest.fixture
def settings(tmp_path):
  return Settings(
    database_url=f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}",
    auth_secret="test-auth-secret",
    bcrypt_rounds=4,
  )


@pytest.fixture
async def pool(settings):
  pool = ConnectionManager.from_settings(settings)
  await pool.init_db()
  yield pool
  await pool.dispose()


@pytest.fixture
def services(pool, settings):
  return build_services(pool, settings)


@pytest.fixture
async def seeded(pool):
  """
  Three customers:
  - Lee Robinson: 14 invoices dated 2023-01-01..14, amount i * 1000 cents,
    paid when i is even, pending otherwise
  - Delba de Oliveira: one pending invoice of 99999 cents on 2022-12-31
  - Amy Burns: no invoices
  """
  async with pool.transaction("seed") as session:
    session.add_all([
      Customer(id=LEE_ID, name="Lee Robinson", email="lee@robinson.com", image_url="/customers/lee-robinson.png"),
      Customer(id=DELBA_ID, name="Delba de Oliveira", email="delba@oliveira.com", image_url="/customers/delba-de-oliveira.png"),
      Customer(id=AMY_ID, name="Amy Burns", email="amy@burns.com", image_url="/customers/amy-burns.png"),
    ])
    await session.flush()
    for i in range(1, 15):
      session.add(Invoice(
        customer_id=LEE_ID,
        amount=i * 1000,
        status="paid" if i % 2 == 0 else "pending",
        date=date(2023, 1, i),
      ))
    session.add(Invoice(customer_id=DELBA_ID, amount=99999, status="pending", date=date(2022, 12, 31)))
    session.add_all([Revenue(month="Jan", revenue=2000), Revenue(month="Feb", revenue=1800)])
  return pool
