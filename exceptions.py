# exceptions.py
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class BillingError(Exception):
  """Base error for the billing core. `message` is always safe to show to a user."""

  def __init__(
    self,
    message: str,
    code: str = "BILLING_ERROR",
    status_code: int = 500,
    details: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message)
    self.message = message
    self.code = code
    self.status_code = status_code
    self.details = details or {}

  def to_dict(self) -> Dict[str, Any]:
    result: Dict[str, Any] = {"detail": self.message, "code": self.code}
    if self.details:
      result["details"] = self.details
    return result


class InputValidationError(BillingError):
  """Per-field validation failure. Never reaches the store."""

  def __init__(self, errors: Dict[str, List[str]], message: str = "Invalid input."):
    super().__init__(
      message=message,
      code="VALIDATION_ERROR",
      status_code=422,
      details={"errors": errors},
    )
    self.errors = errors


class StoreError(BillingError):
  """Store failure surfaced with a generic, operation-scoped message."""

  def __init__(self, message: str, conflict: bool = False):
    super().__init__(
      message=message,
      code="STORE_CONFLICT" if conflict else "STORE_ERROR",
      status_code=409 if conflict else 500,
    )
    self.conflict = conflict


class NotFoundError(BillingError):

  def __init__(self, entity: str, entity_id: str):
    super().__init__(
      message=f"{entity} not found.",
      code="NOT_FOUND",
      status_code=404,
      details={"id": entity_id},
    )
    self.entity = entity
    self.entity_id = entity_id


class AuthenticationError(BillingError):
  pass


class InvalidCredentials(AuthenticationError):
  """Bad email/password combination. Deliberately carries no detail."""

  def __init__(self):
    super().__init__(
      message="Invalid credentials.",
      code="INVALID_CREDENTIALS",
      status_code=401,
    )


class UnexpectedAuthError(AuthenticationError):

  def __init__(self, message: str = "Something went wrong."):
    super().__init__(message=message, code="AUTH_UNEXPECTED", status_code=500)


async def billing_exception_handler(request: Request, exc: BillingError) -> JSONResponse:
  return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
