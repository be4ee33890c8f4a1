# =============================================================================
# tests/test_validation.py - Form parsing and money helpers
# =============================================================================

from decimal import Decimal

import pytest

from exceptions import InputValidationError
from models import InvoiceStatus
from validation import (
  MAX_AMOUNT_CENTS,
  format_currency,
  parse_invoice_form,
  parse_sign_in_form,
  parse_sign_up_form,
  to_decimal,
  to_minor_units,
)


class TestMoney:

  @pytest.mark.parametrize("amount", ["0.01", "0.10", "1", "19.99", "250.00", "1234567.89"])
  def test_round_trip(self, amount):
    """Two fraction digits survive cents and back exactly."""
    assert to_decimal(to_minor_units(Decimal(amount))) == Decimal(amount)

  def test_minor_units_round_half_up(self):
    assert to_minor_units(Decimal("250.00")) == 25000
    assert to_minor_units(Decimal("0.005")) == 1
    assert to_minor_units(Decimal("10.004")) == 1000

  def test_to_decimal_has_two_places(self):
    assert str(to_decimal(25000)) == "250.00"

  def test_format_currency(self):
    assert format_currency(0) == "$0.00"
    assert format_currency(None) == "$0.00"
    assert format_currency(148999) == "$1,489.99"
    assert format_currency(Decimal("56000")) == "$560.00"


class TestInvoiceForm:

  def test_valid_form(self):
    data = parse_invoice_form({"customer_id": "abc", "amount": "250.00", "status": "pending"})

    assert data.customer_id == "abc"
    assert data.amount == Decimal("250.00")
    assert data.status is InvoiceStatus.PENDING

  def test_missing_fields_reported_per_field(self):
    with pytest.raises(InputValidationError) as exc_info:
      parse_invoice_form({}, message="Missing Fields. Failed to Create Invoice.")

    errors = exc_info.value.errors
    assert errors == {
      "customer_id": ["Please select a customer."],
      "amount": ["Please enter an amount greater than $0."],
      "status": ["Please select an invoice status."],
    }
    assert exc_info.value.message == "Missing Fields. Failed to Create Invoice."

  @pytest.mark.parametrize("amount", ["0", "-5", "abc", "", "NaN", "Infinity"])
  def test_rejects_non_positive_or_garbage_amounts(self, amount):
    with pytest.raises(InputValidationError) as exc_info:
      parse_invoice_form({"customer_id": "abc", "amount": amount, "status": "paid"})

    assert list(exc_info.value.errors) == ["amount"]

  def test_rejects_amount_that_rounds_to_zero_cents(self):
    with pytest.raises(InputValidationError) as exc_info:
      parse_invoice_form({"customer_id": "abc", "amount": "0.004", "status": "paid"})

    assert exc_info.value.errors == {"amount": ["Please enter an amount greater than $0."]}

  def test_half_cent_rounds_up_to_one_cent(self):
    assert parse_invoice_form({"customer_id": "abc", "amount": "0.005", "status": "paid"}).amount == Decimal("0.005")

  @pytest.mark.parametrize("amount", ["21474836.48", "1e20", "1e30", "1e999999"])
  def test_rejects_amounts_too_large_to_store(self, amount):
    with pytest.raises(InputValidationError) as exc_info:
      parse_invoice_form({"customer_id": "abc", "amount": amount, "status": "paid"})

    assert exc_info.value.errors == {"amount": ["Please enter an amount no greater than $21,474,836.47."]}

  def test_largest_storable_amount(self):
    data = parse_invoice_form({"customer_id": "abc", "amount": "21474836.47", "status": "paid"})
    assert to_minor_units(data.amount) == MAX_AMOUNT_CENTS

  def test_rejects_unknown_status(self):
    with pytest.raises(InputValidationError) as exc_info:
      parse_invoice_form({"customer_id": "abc", "amount": "5", "status": "overdue"})

    assert exc_info.value.errors == {"status": ["Please select an invoice status."]}

  def test_numeric_amount_accepted(self):
    assert parse_invoice_form({"customer_id": "abc", "amount": 12.5, "status": "paid"}).amount == Decimal("12.5")


class TestCredentialForms:

  def test_sign_up_valid(self):
    data = parse_sign_up_form({"name": " Ada ", "email": "ada@example.com", "password": "secret1"})
    assert data.name == "Ada"
    assert data.email == "ada@example.com"

  def test_sign_up_field_errors(self):
    with pytest.raises(InputValidationError) as exc_info:
      parse_sign_up_form({"name": "", "email": "not-an-email", "password": "123"})

    assert set(exc_info.value.errors) == {"name", "email", "password"}

  def test_sign_in_short_password(self):
    with pytest.raises(InputValidationError):
      parse_sign_in_form({"email": "ada@example.com", "password": "12345"})

  def test_password_over_bcrypt_limit(self):
    with pytest.raises(InputValidationError) as exc_info:
      parse_sign_in_form({"email": "ada@example.com", "password": "x" * 73})

    assert "password" in exc_info.value.errors
