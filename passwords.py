# passwords.py
import asyncio

import bcrypt

DEFAULT_ROUNDS = 10


def hash_password_sync(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
  return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password_sync(password: str, hashed: str) -> bool:
  try:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
  except ValueError:
    # malformed stored hash or over-long password
    return False


# bcrypt is deliberately slow; keep it off the event loop

async def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
  return await asyncio.to_thread(hash_password_sync, password, rounds)


async def verify_password(password: str, hashed: str) -> bool:
  return await asyncio.to_thread(verify_password_sync, password, hashed)
