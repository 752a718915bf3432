"""
Shared fixtures: a fully-populated B2B claim and helpers to vary it.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.models.claim import (
    ClaimState,
    Invoice,
    Party,
    PartyType,
    TimelineEvent,
    TimelineEventType,
)
from app.services.legal import InterestRates


RATES = InterestRates(reference_base_rate=Decimal("4.75"))


def make_party(name="Acme Widgets Ltd", party_type=PartyType.COMPANY, **overrides) -> Party:
    values = dict(
        name=name,
        type=party_type,
        address_line="1 High Street",
        city="Leeds",
        county="West Yorkshire",
        postcode="LS1 1AA",
        email="accounts@example.co.uk",
        phone="0113 000 0000",
    )
    values.update(overrides)
    return Party(**values)


def make_claim(**overrides) -> ClaimState:
    """B2B claim for £1,000 issued 1 Jan 2024, due 31 Jan 2024."""
    values = dict(
        claim_id="claim-001",
        claimant=make_party("Acme Widgets Ltd"),
        defendant=make_party(
            "Slow Payer Ltd",
            address_line="9 Market Row",
            city="York",
            county="North Yorkshire",
            postcode="YO1 7HH",
        ),
        invoice=Invoice(
            amount=Decimal("1000.00"),
            date_issued=date(2024, 1, 1),
            due_date=date(2024, 1, 31),
            invoice_number="INV-1001",
            description="Supply of widgets",
        ),
        timeline=(
            TimelineEvent(date(2023, 12, 1), TimelineEventType.CONTRACT, "Order placed"),
            TimelineEvent(date(2023, 12, 20), TimelineEventType.SERVICE_DELIVERED, "Widgets delivered"),
            TimelineEvent(date(2024, 1, 1), TimelineEventType.INVOICE, "Invoice INV-1001 sent"),
        ),
    )
    values.update(overrides)
    return ClaimState(**values)


@pytest.fixture
def rates():
    return RATES


@pytest.fixture
def b2b_claim():
    return make_claim()


@pytest.fixture
def b2c_claim():
    return make_claim(
        defendant=make_party(
            "Jane Smith",
            PartyType.INDIVIDUAL,
            address_line="4 Elm Close",
            city="Bristol",
            county="",
            postcode="BS1 4DJ",
        ),
    )
