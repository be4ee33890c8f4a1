# queries.py
import asyncio
import logging
import math
from typing import Any, List, Optional

from sqlalchemy import String, case, cast, func, or_
from sqlmodel import col, select

from db import ConnectionManager
from models import (
  CardData,
  Customer,
  CustomerField,
  CustomersTableRow,
  Invoice,
  InvoiceForm,
  InvoiceStatus,
  InvoicesTableRow,
  LatestInvoice,
  Revenue,
)
from validation import format_currency, to_decimal

logger = logging.getLogger(__name__)

ITEMS_PER_PAGE = 6
LATEST_INVOICES = 5


def total_pages(count: int, page_size: int = ITEMS_PER_PAGE) -> int:
  return math.ceil(count / page_size)


def page_offset(page: int, page_size: int = ITEMS_PER_PAGE) -> int:
  return (max(page, 1) - 1) * page_size


def _pattern(query: str) -> str:
  return f"%{query or ''}%"


def _invoice_matches(query: str):
  p = _pattern(query)
  return or_(
    col(Customer.name).ilike(p),
    col(Customer.email).ilike(p),
    cast(Invoice.amount, String).ilike(p),
    cast(Invoice.date, String).ilike(p),
    col(Invoice.status).ilike(p),
  )


def _sum_for(status: InvoiceStatus):
  return func.coalesce(
    func.sum(case((col(Invoice.status) == status.value, col(Invoice.amount)), else_=0)),
    0,
  )


class QueryService:
  """Read-only operations. Every read goes to the store."""

  def __init__(self, pool: ConnectionManager):
    self.pool = pool

  async def fetch_revenue(self) -> List[Revenue]:
    async with self.pool.transaction("Failed to fetch revenue data.") as session:
      rows = await session.exec(select(Revenue))
      return list(rows.all())

  async def fetch_latest_invoices(self) -> List[LatestInvoice]:
    stmt = (
      select(Invoice.amount, Customer.name, Customer.image_url, Customer.email, Invoice.id)
      .join(Customer, col(Invoice.customer_id) == col(Customer.id))
      .order_by(col(Invoice.date).desc())
      .limit(LATEST_INVOICES)
    )
    async with self.pool.transaction("Failed to fetch latest invoices.") as session:
      rows = (await session.exec(stmt)).all()
    return [
      LatestInvoice(
        id=r.id,
        name=r.name,
        email=r.email,
        image_url=r.image_url,
        amount=format_currency(r.amount),
      )
      for r in rows
    ]

  async def _scalar(self, stmt: Any, failure: str) -> Any:
    async with self.pool.transaction(failure) as session:
      return (await session.exec(stmt)).one()

  async def fetch_card_data(self) -> CardData:
    failure = "Failed to fetch card data."
    # a single connection serializes statements, so each branch takes its own
    invoice_count, customer_count, totals = await asyncio.gather(
      self._scalar(select(func.count()).select_from(Invoice), failure),
      self._scalar(select(func.count()).select_from(Customer), failure),
      self._scalar(
        select(
          _sum_for(InvoiceStatus.PAID).label("paid"),
          _sum_for(InvoiceStatus.PENDING).label("pending"),
        ),
        failure,
      ),
    )
    return CardData(
      number_of_invoices=int(invoice_count or 0),
      number_of_customers=int(customer_count or 0),
      total_paid_invoices=format_currency(totals.paid),
      total_pending_invoices=format_currency(totals.pending),
    )

  async def fetch_filtered_invoices(self, query: str, current_page: int) -> List[InvoicesTableRow]:
    stmt = (
      select(
        Invoice.id,
        Invoice.customer_id,
        Invoice.amount,
        Invoice.date,
        Invoice.status,
        Customer.name,
        Customer.email,
        Customer.image_url,
      )
      .join(Customer, col(Invoice.customer_id) == col(Customer.id))
      .where(_invoice_matches(query))
      .order_by(col(Invoice.date).desc())
      .limit(ITEMS_PER_PAGE)
      .offset(page_offset(current_page))
    )
    async with self.pool.transaction("Failed to fetch invoices.") as session:
      rows = (await session.exec(stmt)).all()
    return [InvoicesTableRow.model_validate(dict(r._mapping)) for r in rows]

  async def fetch_invoices_pages(self, query: str) -> int:
    stmt = (
      select(func.count())
      .select_from(Invoice)
      .join(Customer, col(Invoice.customer_id) == col(Customer.id))
      .where(_invoice_matches(query))
    )
    async with self.pool.transaction("Failed to fetch total number of invoices.") as session:
      count = (await session.exec(stmt)).one()
    return total_pages(int(count or 0))

  async def fetch_invoice_by_id(self, invoice_id: str) -> Optional[InvoiceForm]:
    async with self.pool.transaction("Failed to fetch invoice.") as session:
      invoice = await session.get(Invoice, invoice_id)
    if invoice is None:
      return None
    return InvoiceForm(
      id=invoice.id,
      customer_id=invoice.customer_id,
      amount=to_decimal(invoice.amount),
      status=invoice.status,
    )

  async def fetch_customers(self) -> List[CustomerField]:
    stmt = select(Customer.id, Customer.name).order_by(col(Customer.name).asc())
    async with self.pool.transaction("Failed to fetch all customers.") as session:
      rows = (await session.exec(stmt)).all()
    return [CustomerField(id=r.id, name=r.name) for r in rows]

  async def fetch_filtered_customers(self, query: str) -> List[CustomersTableRow]:
    p = _pattern(query)
    stmt = (
      select(
        Customer.id,
        Customer.name,
        Customer.email,
        Customer.image_url,
        func.count(col(Invoice.id)).label("total_invoices"),
        _sum_for(InvoiceStatus.PENDING).label("total_pending"),
        _sum_for(InvoiceStatus.PAID).label("total_paid"),
      )
      .outerjoin(Invoice, col(Customer.id) == col(Invoice.customer_id))
      .where(or_(col(Customer.name).ilike(p), col(Customer.email).ilike(p)))
      .group_by(Customer.id, Customer.name, Customer.email, Customer.image_url)
      .order_by(col(Customer.name).asc())
    )
    async with self.pool.transaction("Failed to fetch customer table.") as session:
      rows = (await session.exec(stmt)).all()
    return [
      CustomersTableRow(
        id=r.id,
        name=r.name,
        email=r.email,
        image_url=r.image_url,
        total_invoices=int(r.total_invoices or 0),
        total_pending=format_currency(r.total_pending),
        total_paid=format_currency(r.total_paid),
      )
      for r in rows
    ]
