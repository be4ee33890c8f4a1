# auth.py
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from jose import JWTError, jwt
from sqlmodel import col, select

from db import ConnectionManager
from exceptions import (
  InputValidationError,
  InvalidCredentials,
  StoreError,
  UnexpectedAuthError,
)
from models import User, UserPublic
from mutations import MutationService
from passwords import DEFAULT_ROUNDS, hash_password, verify_password
from results import LOGIN_VIEW, FormState, NavigationInstruction, SessionGrant
from validation import parse_sign_in_form, parse_sign_up_form

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"
SIGN_UP_NOTICE = "Account created successfully"


class JWTSessionIssuer:
  """Signs session tokens. Getting them to the browser is someone else's job."""

  def __init__(self, secret: str, ttl_minutes: int = 60 * 24):
    self.secret = secret
    self.ttl = timedelta(minutes=ttl_minutes)

  def issue(self, user: UserPublic) -> str:
    now = datetime.now(timezone.utc)
    claims = {
      "sub": user.id,
      "email": user.email,
      "name": user.name,
      "iat": int(now.timestamp()),
      "exp": int((now + self.ttl).timestamp()),
    }
    return jwt.encode(claims, self.secret, algorithm=SESSION_ALGORITHM)

  def decode(self, token: str) -> Optional[Dict[str, Any]]:
    try:
      return jwt.decode(token, self.secret, algorithms=[SESSION_ALGORITHM])
    except JWTError:
      return None


class CredentialProvider(Protocol):
  async def lookup_user(self, email: str) -> Optional[User]: ...

  async def verify_password(self, password: str, hashed: str) -> bool: ...

  async def issue_session(self, user: UserPublic) -> SessionGrant: ...


class DatabaseCredentialProvider:
  """Users table + bcrypt + signed JWT sessions."""

  def __init__(self, pool: ConnectionManager, issuer: JWTSessionIssuer):
    self.pool = pool
    self.issuer = issuer

  async def lookup_user(self, email: str) -> Optional[User]:
    async with self.pool.transaction("Failed to fetch user.") as session:
      rows = await session.exec(select(User).where(col(User.email) == email))
      return rows.first()

  async def verify_password(self, password: str, hashed: str) -> bool:
    return await verify_password(password, hashed)

  async def issue_session(self, user: UserPublic) -> SessionGrant:
    return SessionGrant(token=self.issuer.issue(user), user=user)


class Authenticator:
  def __init__(self, provider: CredentialProvider, mutations: MutationService):
    self.provider = provider
    self.mutations = mutations
    self._decoy_hash: Optional[str] = None

  async def _decoy(self) -> str:
    # checked against when the email is unknown, at the cost of a stored hash
    if self._decoy_hash is None:
      rounds = self.mutations.bcrypt_rounds if self.mutations else DEFAULT_ROUNDS
      self._decoy_hash = await hash_password(secrets.token_urlsafe(16), rounds=rounds)
    return self._decoy_hash

  async def _authorize(self, form: Mapping[str, Any]) -> SessionGrant:
    try:
      creds = parse_sign_in_form(form)
    except InputValidationError:
      raise InvalidCredentials()

    try:
      user = await self.provider.lookup_user(creds.email)
    except StoreError as e:
      raise UnexpectedAuthError() from e

    # unknown email and wrong password must be indistinguishable, in time too
    hashed = user.password if user is not None else await self._decoy()
    matches = await self.provider.verify_password(creds.password, hashed)
    if user is None or not matches:
      logger.info("Invalid credentials")
      raise InvalidCredentials()

    return await self.provider.issue_session(
      UserPublic(id=user.id, name=user.name, email=user.email)
    )

  async def authenticate(self, form: Mapping[str, Any]) -> Union[SessionGrant, FormState]:
    """Sign in. Bad credentials come back as a FormState; anything else raises
    UnexpectedAuthError for the caller's generic fault handling."""
    try:
      return await self._authorize(form)
    except InvalidCredentials as e:
      return FormState(message=e.message, reason="credentials")

  async def sign_up(self, form: Mapping[str, Any]) -> Union[NavigationInstruction, FormState]:
    try:
      data = parse_sign_up_form(form)
    except InputValidationError as e:
      return FormState(errors=e.errors, message=e.message, reason="validation")

    try:
      await self.mutations.create_user(data.name, data.email, data.password)
    except StoreError as e:
      return FormState(message=e.message, reason="conflict" if e.conflict else "store")

    return NavigationInstruction(destination=LOGIN_VIEW, notice=SIGN_UP_NOTICE)
