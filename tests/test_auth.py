# =============================================================================
# tests/test_auth.py - Password hashing, sign-in and sign-up
# =============================================================================

import pytest
from sqlalchemy import func
from sqlmodel import select

from auth import Authenticator, DatabaseCredentialProvider, JWTSessionIssuer
from exceptions import StoreError, UnexpectedAuthError
from invalidation import InvalidationNotifier
from models import User
from mutations import MutationService
from passwords import hash_password, verify_password
from results import LOGIN_VIEW, FormState, NavigationInstruction, SessionGrant


@pytest.fixture
def issuer():
  return JWTSessionIssuer("test-auth-secret", ttl_minutes=5)


@pytest.fixture
def authenticator(pool, issuer):
  mutations = MutationService(pool, InvalidationNotifier(), bcrypt_rounds=4)
  return Authenticator(DatabaseCredentialProvider(pool, issuer), mutations)


@pytest.fixture
async def registered(authenticator):
  result = await authenticator.sign_up({"name": "Ada", "email": "ada@example.com", "password": "secret1"})
  assert isinstance(result, NavigationInstruction)
  return result


class TestPasswords:

  @pytest.mark.parametrize("password", ["123456", "correct horse battery staple", "pässwörd"])
  async def test_hash_verifies(self, password):
    hashed = await hash_password(password, rounds=4)

    assert hashed != password
    assert await verify_password(password, hashed)

  async def test_other_password_does_not_verify(self):
    hashed = await hash_password("secret1", rounds=4)
    assert not await verify_password("secret2", hashed)

  async def test_salted(self):
    assert await hash_password("secret1", rounds=4) != await hash_password("secret1", rounds=4)

  async def test_malformed_hash_is_a_mismatch(self):
    assert not await verify_password("secret1", "not-a-bcrypt-hash")


class TestSignUp:

  async def test_redirects_to_login_with_notice(self, registered):
    assert registered == NavigationInstruction(destination=LOGIN_VIEW, notice="Account created successfully")

  async def test_already_registered_email(self, pool, authenticator, registered):
    result = await authenticator.sign_up({"name": "Other", "email": "ada@example.com", "password": "secret2"})

    assert isinstance(result, FormState)
    assert result.message == "Failed to create user."
    assert result.reason == "conflict"

    async with pool.transaction("count") as session:
      assert (await session.exec(select(func.count()).select_from(User))).one() == 1

  async def test_invalid_form(self, authenticator):
    result = await authenticator.sign_up({"name": "", "email": "nope", "password": "1"})

    assert isinstance(result, FormState)
    assert result.reason == "validation"
    assert set(result.errors) == {"name", "email", "password"}


class TestAuthenticate:

  async def test_success_issues_session(self, authenticator, issuer, registered):
    result = await authenticator.authenticate({"email": "ada@example.com", "password": "secret1"})

    assert isinstance(result, SessionGrant)
    assert result.user.email == "ada@example.com"
    assert result.redirect.destination == "/dashboard"

    claims = issuer.decode(result.token)
    assert claims["sub"] == result.user.id
    assert claims["email"] == "ada@example.com"

  async def test_unknown_email_and_wrong_password_look_the_same(self, authenticator, registered):
    unknown = await authenticator.authenticate({"email": "nobody@example.com", "password": "secret1"})
    wrong = await authenticator.authenticate({"email": "ada@example.com", "password": "secret2"})

    assert unknown == wrong
    assert unknown == FormState(message="Invalid credentials.", reason="credentials")

  async def test_unknown_email_still_checks_a_password(self, pool, issuer):
    checked = []

    class RecordingProvider(DatabaseCredentialProvider):
      async def verify_password(self, password, hashed):
        checked.append(hashed)
        return await super().verify_password(password, hashed)

    mutations = MutationService(pool, InvalidationNotifier(), bcrypt_rounds=4)
    auth = Authenticator(RecordingProvider(pool, issuer), mutations)

    result = await auth.authenticate({"email": "nobody@example.com", "password": "secret1"})

    assert result == FormState(message="Invalid credentials.", reason="credentials")
    assert len(checked) == 1
    assert checked[0].startswith("$2b$04$")

  async def test_malformed_credentials_get_the_generic_message(self, authenticator):
    result = await authenticator.authenticate({"email": "not-an-email", "password": "1"})

    assert result == FormState(message="Invalid credentials.", reason="credentials")
    assert result.errors == {}

  async def test_store_failure_is_unexpected(self, issuer):

    class BrokenProvider(DatabaseCredentialProvider):
      async def lookup_user(self, email):
        raise StoreError("Failed to fetch user.")

    auth = Authenticator(BrokenProvider(None, issuer), mutations=None)

    with pytest.raises(UnexpectedAuthError):
      await auth.authenticate({"email": "ada@example.com", "password": "secret1"})


class TestSessionIssuer:

  def test_foreign_signature_rejected(self, issuer):
    from models import UserPublic

    token = JWTSessionIssuer("some-other-secret").issue(UserPublic(id="1", name="A", email="a@b.co"))
    assert issuer.decode(token) is None
