# results.py
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from models import UserPublic

INVOICES_VIEW = "/dashboard/invoices"
DASHBOARD_VIEW = "/dashboard"
LOGIN_VIEW = "/login"


class NavigationInstruction(BaseModel):
  destination: str
  notice: Optional[str] = None


class FormState(BaseModel):
  """Failed action result handed back to the form that submitted it."""
  errors: Dict[str, List[str]] = Field(default_factory=dict)
  message: Optional[str] = None
  reason: Literal["validation", "not_found", "conflict", "store", "credentials"] = "validation"


class SessionGrant(BaseModel):
  token: str
  user: UserPublic
  redirect: NavigationInstruction = Field(
    default_factory=lambda: NavigationInstruction(destination=DASHBOARD_VIEW)
  )
