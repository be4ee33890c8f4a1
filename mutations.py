# mutations.py
import logging
from datetime import date
from typing import Any, Mapping, Optional, Union

from sqlmodel.ext.asyncio.session import AsyncSession

from db import ConnectionManager
from exceptions import InputValidationError, NotFoundError, StoreError
from invalidation import InvalidationNotifier
from models import Customer, Invoice, User, UserPublic
from passwords import DEFAULT_ROUNDS, hash_password
from results import INVOICES_VIEW, FormState, NavigationInstruction
from validation import InvoiceInput, parse_invoice_form, to_minor_units

logger = logging.getLogger(__name__)

ActionResult = Union[NavigationInstruction, FormState]


class UnknownCustomer(Exception):
  pass


class MutationService:
  """Invoice and user writes. Each call is one atomic store operation.

  Received -> Validating -> Rejected | Executing -> Committed -> Notified,
  or Failed. The notifier only ever hears about committed writes.
  """

  def __init__(
    self,
    pool: ConnectionManager,
    notifier: InvalidationNotifier,
    bcrypt_rounds: int = DEFAULT_ROUNDS,
  ):
    self.pool = pool
    self.notifier = notifier
    self.bcrypt_rounds = bcrypt_rounds

  async def _ensure_customer(self, session: AsyncSession, customer_id: str) -> None:
    if await session.get(Customer, customer_id) is None:
      raise UnknownCustomer(customer_id)

  async def _write_invoice(
    self,
    verb: str,
    form: Mapping[str, Any],
    invoice_id: Optional[str] = None,
  ) -> ActionResult:
    try:
      data: InvoiceInput = parse_invoice_form(form, message=f"Missing Fields. Failed to {verb} Invoice.")
    except InputValidationError as e:
      return FormState(errors=e.errors, message=e.message, reason="validation")

    amount_in_cents = to_minor_units(data.amount)
    failure = f"Database Error: Failed to {verb} Invoice."

    try:
      async with self.pool.transaction(failure) as session:
        await self._ensure_customer(session, data.customer_id)
        if invoice_id is None:
          invoice = Invoice(
            customer_id=data.customer_id,
            amount=amount_in_cents,
            status=data.status.value,
            date=date.today(),
          )
        else:
          invoice = await session.get(Invoice, invoice_id)
          if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
          invoice.customer_id = data.customer_id
          invoice.amount = amount_in_cents
          invoice.status = data.status.value
        session.add(invoice)
    except UnknownCustomer:
      return FormState(
        errors={"customer_id": ["Please select a customer."]},
        message=f"Customer not found. Failed to {verb} Invoice.",
        reason="validation",
      )
    except NotFoundError:
      return FormState(message=f"Invoice not found. Failed to {verb} Invoice.", reason="not_found")
    except StoreError as e:
      return FormState(message=e.message, reason="store")

    logger.info(f"{verb}d invoice {invoice.id}")
    self.notifier.invalidate(INVOICES_VIEW)
    return NavigationInstruction(destination=INVOICES_VIEW)

  async def create_invoice(self, form: Mapping[str, Any]) -> ActionResult:
    return await self._write_invoice("Create", form)

  async def update_invoice(self, invoice_id: str, form: Mapping[str, Any]) -> ActionResult:
    return await self._write_invoice("Update", form, invoice_id=invoice_id)

  async def delete_invoice(self, invoice_id: str) -> Optional[FormState]:
    """Returns None on success, a FormState with a message otherwise."""
    try:
      async with self.pool.transaction("Database Error: Failed to Delete Invoice.") as session:
        invoice = await session.get(Invoice, invoice_id)
        if invoice is None:
          raise NotFoundError("Invoice", invoice_id)
        await session.delete(invoice)
    except NotFoundError:
      return FormState(message="Invoice not found. Failed to Delete Invoice.", reason="not_found")
    except StoreError as e:
      return FormState(message=e.message, reason="store")

    logger.info(f"Deleted invoice {invoice_id}")
    self.notifier.invalidate(INVOICES_VIEW)
    return None

  async def create_user(self, name: str, email: str, password: str) -> UserPublic:
    """Hash and insert. Raises StoreError("Failed to create user.") on any store
    failure, including an already registered email."""
    hashed = await hash_password(password, rounds=self.bcrypt_rounds)
    user = User(name=name, email=email, password=hashed)
    async with self.pool.transaction("Failed to create user.") as session:
      session.add(user)
    logger.info(f"Created user {user.id}")
    return UserPublic(id=user.id, name=user.name, email=user.email)
