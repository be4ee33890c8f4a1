# models.py
import datetime as dt
import enum
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel
from sqlmodel import SQLModel, Field


def _new_id() -> str:
  return str(uuid4())


class InvoiceStatus(str, enum.Enum):
  PENDING = "pending"
  PAID = "paid"


class Customer(SQLModel, table=True):
  __tablename__ = "customers"

  id: str = Field(default_factory=_new_id, primary_key=True, index=True)
  name: str
  email: str
  image_url: str = ""

class Invoice(SQLModel, table=True):
  __tablename__ = "invoices"

  id: str = Field(default_factory=_new_id, primary_key=True, index=True)
  customer_id: str = Field(foreign_key="customers.id", index=True)
  amount: int  # cents
  status: str = InvoiceStatus.PENDING.value  # pending|paid
  date: dt.date

class Revenue(SQLModel, table=True):
  __tablename__ = "revenue"

  month: str = Field(primary_key=True)  # Jan, Feb, ...
  revenue: int

class User(SQLModel, table=True):
  __tablename__ = "users"

  id: str = Field(default_factory=_new_id, primary_key=True, index=True)
  name: str
  email: str = Field(unique=True, index=True)
  password: str  # bcrypt hash only


# read models handed to the presentation layer

class UserPublic(BaseModel):
  id: str
  name: str
  email: str

class LatestInvoice(BaseModel):
  id: str
  name: str
  email: str
  image_url: str
  amount: str  # formatted, e.g. "$1,234.56"

class InvoicesTableRow(BaseModel):
  id: str
  customer_id: str
  name: str
  email: str
  image_url: str
  date: dt.date
  amount: int  # cents
  status: str

class InvoiceForm(BaseModel):
  id: str
  customer_id: str
  amount: Decimal  # dollars, for form pre-population
  status: str

class CustomerField(BaseModel):
  id: str
  name: str

class CustomersTableRow(BaseModel):
  id: str
  name: str
  email: str
  image_url: str
  total_invoices: int
  total_pending: str
  total_paid: str

class CardData(BaseModel):
  number_of_invoices: int
  number_of_customers: int
  total_paid_invoices: str
  total_pending_invoices: str
