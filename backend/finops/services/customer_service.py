"""Read-only customer lookup used as context for action analysis."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from finops.models.customer import Customer
from finops.schemas.customer import CustomerSummary

logger = logging.getLogger(__name__)


class CustomerLookupError(Exception):
    pass


class InvalidCustomerIdentifierError(CustomerLookupError):
    pass


class CustomerNotFoundError(CustomerLookupError):
    pass


def parse_customer_identifier(identifier: str) -> int:
    raw = (identifier or "").strip()
    try:
        customer_id = int(raw)
    except ValueError as exc:
        raise InvalidCustomerIdentifierError(f"Invalid customer identifier: {identifier!r}") from exc
    if customer_id <= 0:
        raise InvalidCustomerIdentifierError(f"Invalid customer identifier: {identifier!r}")
    return customer_id


def get_customer_summary(db: Session, identifier: str) -> CustomerSummary:
    customer_id = parse_customer_identifier(identifier)
    customer = db.get(Customer, customer_id)
    if customer is None:
        logger.info("Customer %s not found", customer_id)
        raise CustomerNotFoundError(f"Customer not found: {customer_id}")
    return CustomerSummary.model_validate(customer)
