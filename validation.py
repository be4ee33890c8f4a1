# validation.py
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from exceptions import InputValidationError
from models import InvoiceStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72

CENTS = Decimal(100)
TWO_PLACES = Decimal("0.01")
# invoices.amount is a 32-bit integer column of cents
MAX_AMOUNT_CENTS = 2_147_483_647
MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / CENTS

M = TypeVar("M", bound=BaseModel)


def _fail(kind: str, message: str) -> PydanticCustomError:
  return PydanticCustomError(kind, message)


class InvoiceInput(BaseModel):
  customer_id: str
  amount: Decimal
  status: InvoiceStatus

  @field_validator("customer_id", mode="before")
  @classmethod
  def check_customer(cls, v: Any) -> str:
    if not isinstance(v, str) or not v.strip():
      raise _fail("customer", "Please select a customer.")
    return v.strip()

  @field_validator("amount", mode="before")
  @classmethod
  def check_amount(cls, v: Any) -> Decimal:
    message = "Please enter an amount greater than $0."
    if v is None or isinstance(v, bool):
      raise _fail("amount", message)
    try:
      amount = Decimal(str(v).strip())
    except InvalidOperation:
      raise _fail("amount", message)
    if not amount.is_finite() or amount <= 0:
      raise _fail("amount", message)
    if amount > MAX_AMOUNT:
      raise _fail("amount", f"Please enter an amount no greater than {format_currency(MAX_AMOUNT_CENTS)}.")
    # sub-cent amounts would be stored as 0
    if to_minor_units(amount) < 1:
      raise _fail("amount", message)
    return amount

  @field_validator("status", mode="before")
  @classmethod
  def check_status(cls, v: Any) -> str:
    if v not in [s.value for s in InvoiceStatus]:
      raise _fail("status", "Please select an invoice status.")
    return v


def _check_password(v: Any) -> str:
  if not isinstance(v, str) or len(v) < MIN_PASSWORD_LENGTH:
    raise _fail("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
  if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
    raise _fail("password", f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
  return v


def _check_email(v: Any) -> str:
  if not isinstance(v, str) or not re.match(EMAIL_PATTERN, v.strip()):
    raise _fail("email", "Please enter a valid email address.")
  return v.strip()


class SignInInput(BaseModel):
  email: str
  password: str

  @field_validator("email", mode="before")
  @classmethod
  def check_email(cls, v: Any) -> str:
    return _check_email(v)

  @field_validator("password", mode="before")
  @classmethod
  def check_password(cls, v: Any) -> str:
    return _check_password(v)


class SignUpInput(SignInInput):
  name: str

  @field_validator("name", mode="before")
  @classmethod
  def check_name(cls, v: Any) -> str:
    if not isinstance(v, str) or not v.strip():
      raise _fail("name", "Please enter a name.")
    return v.strip()


def field_errors(exc: ValidationError) -> Dict[str, List[str]]:
  errors: Dict[str, List[str]] = {}
  for err in exc.errors():
    key = str(err["loc"][0]) if err["loc"] else "_form"
    errors.setdefault(key, []).append(err["msg"])
  return errors


def _parse(model: Type[M], form: Mapping[str, Any], fields: List[str], message: str) -> M:
  # absent keys are passed as None so the field validators report them
  raw = {name: form.get(name) for name in fields}
  try:
    return model.model_validate(raw)
  except ValidationError as e:
    raise InputValidationError(field_errors(e), message=message) from None


def parse_invoice_form(form: Mapping[str, Any], message: str = "Missing Fields.") -> InvoiceInput:
  return _parse(InvoiceInput, form, ["customer_id", "amount", "status"], message)


def parse_sign_up_form(form: Mapping[str, Any]) -> SignUpInput:
  return _parse(SignUpInput, form, ["name", "email", "password"], "Invalid credentials.")


def parse_sign_in_form(form: Mapping[str, Any]) -> SignInInput:
  return _parse(SignInInput, form, ["email", "password"], "Invalid credentials.")


# money

def to_minor_units(amount: Decimal) -> int:
  return int((Decimal(amount) * CENTS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_decimal(cents: int) -> Decimal:
  return (Decimal(cents) / CENTS).quantize(TWO_PLACES)


def format_currency(cents: Any) -> str:
  value = to_decimal(int(cents or 0))
  sign = "-" if value < 0 else ""
  return f"{sign}${abs(value):,.2f}"
