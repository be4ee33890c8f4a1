import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import Authenticator, DatabaseCredentialProvider, JWTSessionIssuer
from billing_route import BillingServices, router as billing_router
from config import Settings, load_settings
from db import ConnectionManager
from exceptions import BillingError, billing_exception_handler
from invalidation import InvalidationNotifier
from mutations import MutationService
from queries import QueryService

logger = logging.getLogger(__name__)


def build_services(pool: ConnectionManager, settings: Settings) -> BillingServices:
  notifier = InvalidationNotifier()
  mutations = MutationService(pool, notifier, bcrypt_rounds=settings.bcrypt_rounds)
  issuer = JWTSessionIssuer(settings.auth_secret, ttl_minutes=settings.session_ttl_minutes)
  return BillingServices(
    pool=pool,
    notifier=notifier,
    queries=QueryService(pool),
    mutations=mutations,
    auth=Authenticator(DatabaseCredentialProvider(pool, issuer), mutations),
    bcrypt_rounds=settings.bcrypt_rounds,
  )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
  settings = settings or load_settings()

  logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
  )

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    pool = ConnectionManager.from_settings(settings)
    await pool.init_db()
    app.state.services = build_services(pool, settings)
    logger.info("Billing backend started")
    yield
    await pool.dispose()
    logger.info("Billing backend stopped")

  app = FastAPI(title="Billing Backend", version="1.0.0", lifespan=lifespan)
  app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  app.add_exception_handler(BillingError, billing_exception_handler)
  app.include_router(billing_router)

  @app.get("/health")
  def health():
    return {"ok": True}

  return app


app = create_app()
