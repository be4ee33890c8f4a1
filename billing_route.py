# billing_route.py
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlmodel import select

from auth import Authenticator
from db import ConnectionManager
from invalidation import InvalidationNotifier
from models import (
  CardData,
  Customer,
  CustomerField,
  CustomersTableRow,
  Invoice,
  InvoiceForm,
  InvoicesTableRow,
  LatestInvoice,
  Revenue,
  User,
)
from mutations import MutationService
from passwords import hash_password
from queries import QueryService
from results import DASHBOARD_VIEW, FormState, NavigationInstruction, SessionGrant

router = APIRouter(prefix="/api", tags=["billing"])

Form = Dict[str, Any]

STATUS_FOR_REASON = {
  "validation": 422,
  "credentials": 401,
  "not_found": 404,
  "conflict": 409,
  "store": 500,
}


@dataclass
class BillingServices:
  pool: ConnectionManager
  notifier: InvalidationNotifier
  queries: QueryService
  mutations: MutationService
  auth: Authenticator
  bcrypt_rounds: int


def get_services(request: Request) -> BillingServices:
  return request.app.state.services


def _respond(result: Union[NavigationInstruction, FormState, SessionGrant, None]):
  if result is None:
    return {"ok": True}
  if isinstance(result, FormState):
    return JSONResponse(status_code=STATUS_FOR_REASON[result.reason], content=result.model_dump())
  if isinstance(result, NavigationInstruction):
    return {"redirect": result.model_dump()}
  return result.model_dump()


# queries

@router.get("/revenue", response_model=List[Revenue])
async def revenue(svc: BillingServices = Depends(get_services)):
  return await svc.queries.fetch_revenue()

@router.get("/invoices/latest", response_model=List[LatestInvoice])
async def latest_invoices(svc: BillingServices = Depends(get_services)):
  return await svc.queries.fetch_latest_invoices()

@router.get("/cards", response_model=CardData)
async def card_data(svc: BillingServices = Depends(get_services)):
  return await svc.queries.fetch_card_data()

@router.get("/invoices", response_model=List[InvoicesTableRow])
async def list_invoices(
  query: str = "",
  page: int = Query(default=1, ge=1),
  svc: BillingServices = Depends(get_services),
):
  return await svc.queries.fetch_filtered_invoices(query, page)

@router.get("/invoices/pages")
async def invoice_pages(query: str = "", svc: BillingServices = Depends(get_services)):
  return {"total_pages": await svc.queries.fetch_invoices_pages(query)}

@router.get("/invoices/{invoice_id}", response_model=InvoiceForm)
async def get_invoice(invoice_id: str, svc: BillingServices = Depends(get_services)):
  invoice = await svc.queries.fetch_invoice_by_id(invoice_id)
  if not invoice:
    raise HTTPException(status_code=404, detail="Invoice not found")
  return invoice

@router.get("/customers", response_model=List[CustomerField])
async def list_customers(svc: BillingServices = Depends(get_services)):
  return await svc.queries.fetch_customers()

@router.get("/customers/table", response_model=List[CustomersTableRow])
async def customers_table(query: str = "", svc: BillingServices = Depends(get_services)):
  return await svc.queries.fetch_filtered_customers(query)


# actions

@router.post("/invoices")
async def create_invoice(form: Form = Body(default_factory=dict), svc: BillingServices = Depends(get_services)):
  return _respond(await svc.mutations.create_invoice(form))

@router.put("/invoices/{invoice_id}")
async def update_invoice(
  invoice_id: str,
  form: Form = Body(default_factory=dict),
  svc: BillingServices = Depends(get_services),
):
  return _respond(await svc.mutations.update_invoice(invoice_id, form))

@router.delete("/invoices/{invoice_id}")
async def delete_invoice(invoice_id: str, svc: BillingServices = Depends(get_services)):
  return _respond(await svc.mutations.delete_invoice(invoice_id))

@router.post("/signup")
async def sign_up(form: Form = Body(default_factory=dict), svc: BillingServices = Depends(get_services)):
  return _respond(await svc.auth.sign_up(form))

@router.post("/login")
async def login(form: Form = Body(default_factory=dict), svc: BillingServices = Depends(get_services)):
  return _respond(await svc.auth.authenticate(form))


@router.post("/seed")
async def seed_if_empty(svc: BillingServices = Depends(get_services)):
  # Seed only if DB is empty
  demo_password = await hash_password("123456", rounds=svc.bcrypt_rounds)
  async with svc.pool.transaction("Failed to seed data.") as session:
    any_customer = (await session.exec(select(Customer))).first()
    if any_customer:
      return {"ok": True, "seeded": False}

    session.add_all([
      Customer(id="d6e15727-9fe1-4961-8c5b-ea44a9bd81aa", name="Evil Rabbit", email="evil@rabbit.com", image_url="/customers/evil-rabbit.png"),
      Customer(id="3958dc9e-712f-4377-85e9-fec4b6a6442a", name="Delba de Oliveira", email="delba@oliveira.com", image_url="/customers/delba-de-oliveira.png"),
      Customer(id="3958dc9e-742f-4377-85e9-fec4b6a6442a", name="Lee Robinson", email="lee@robinson.com", image_url="/customers/lee-robinson.png"),
      Customer(id="76d65c26-f784-44a2-ac19-586678f7c2f2", name="Michael Novotny", email="michael@novotny.com", image_url="/customers/michael-novotny.png"),
    ])
    await session.flush()

    session.add_all([
      Invoice(customer_id="d6e15727-9fe1-4961-8c5b-ea44a9bd81aa", amount=15795, status="pending", date=date(2022, 12, 6)),
      Invoice(customer_id="3958dc9e-712f-4377-85e9-fec4b6a6442a", amount=20348, status="pending", date=date(2022, 11, 14)),
      Invoice(customer_id="3958dc9e-742f-4377-85e9-fec4b6a6442a", amount=3040, status="paid", date=date(2022, 10, 29)),
      Invoice(customer_id="76d65c26-f784-44a2-ac19-586678f7c2f2", amount=44800, status="paid", date=date(2023, 9, 10)),
      Invoice(customer_id="3958dc9e-742f-4377-85e9-fec4b6a6442a", amount=34577, status="pending", date=date(2023, 8, 5)),
    ])

    session.add_all([
      Revenue(month=m, revenue=r)
      for m, r in [
        ("Jan", 2000), ("Feb", 1800), ("Mar", 2200), ("Apr", 2500),
        ("May", 2300), ("Jun", 3200), ("Jul", 3500), ("Aug", 3700),
        ("Sep", 2500), ("Oct", 2800), ("Nov", 3000), ("Dec", 4800),
      ]
    ])

    session.add(User(
      name="User",
      email="user@nextmail.com",
      password=demo_password,
    ))

  svc.notifier.invalidate(DASHBOARD_VIEW)
  return {"ok": True, "seeded": True}
