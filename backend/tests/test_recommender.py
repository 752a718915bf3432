"""
Document Recommender Tests

Verifies:
1. Each claim stage maps to exactly one primary document
2. Court is only recommended once the LBA response window has elapsed
3. A manual selection is never replaced, only annotated with warnings
"""
from datetime import date
from decimal import Decimal

import pytest

from app.models.claim import (
    DocumentType,
    Invoice,
    PartyType,
    TimelineEvent,
    TimelineEventType,
)
from app.services.legal import interest_for_claim
from app.services.strategy import ClaimStage, DocumentRecommender, recommend_document

from conftest import make_claim, make_party


@pytest.fixture
def recommender():
    return DocumentRecommender()


def with_event(claim, event_date, event_type):
    return claim.with_changes(timeline=claim.timeline + (TimelineEvent(event_date, event_type),))


# =============================================================================
# STAGE CLASSIFICATION
# =============================================================================

class TestStages:

    def test_fresh_overdue_invoice_gets_polite_chaser(self, recommender, b2b_claim):
        rec = recommender.recommend(b2b_claim, date(2024, 2, 5))
        assert rec.stage is ClaimStage.NO_CONTACT
        assert rec.primary_document is DocumentType.POLITE_CHASER
        assert rec.urgency == 2
        assert [a.document for a in rec.alternatives] == [DocumentType.LBA]

    def test_not_yet_due_is_lowest_urgency(self, recommender, b2b_claim):
        rec = recommender.recommend(b2b_claim, date(2024, 1, 20))
        assert rec.stage is ClaimStage.NO_CONTACT
        assert rec.urgency == 1

    def test_chased_claim(self, recommender, b2b_claim):
        claim = with_event(b2b_claim, date(2024, 2, 7), TimelineEventType.CHASER)
        rec = recommender.recommend(claim, date(2024, 2, 10))
        assert rec.stage is ClaimStage.CHASED
        assert rec.primary_document is DocumentType.LBA
        assert rec.reason.startswith("Previous reminders have not resulted in payment")
        assert [a.document for a in rec.alternatives] == [DocumentType.POLITE_CHASER]
        assert rec.urgency == 2

    def test_reminder_escalates_to_lba_before_fourteen_days(self, recommender, b2b_claim):
        claim = with_event(b2b_claim, date(2024, 2, 5), TimelineEventType.PAYMENT_REMINDER)
        rec = recommender.recommend(claim, date(2024, 2, 10))
        assert rec.stage is ClaimStage.CHASED
        assert rec.primary_document is DocumentType.LBA

    def test_overdue_beyond_fourteen_days_requires_lba(self, recommender, b2b_claim):
        rec = recommender.recommend(b2b_claim, date(2024, 2, 20))
        assert rec.stage is ClaimStage.LBA_REQUIRED
        assert rec.primary_document is DocumentType.LBA
        assert "20 days overdue" in rec.reason

    def test_exactly_fourteen_days_is_not_yet_lba(self, recommender, b2b_claim):
        rec = recommender.recommend(b2b_claim, date(2024, 2, 14))
        assert rec.stage is ClaimStage.NO_CONTACT

    def test_lba_window_running(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(lba_already_sent=True, lba_sent_date=date(2024, 3, 1))
        rec = recommender.recommend(claim, date(2024, 3, 15))
        assert rec.stage is ClaimStage.LBA_SENT_AWAITING_RESPONSE
        assert rec.primary_document is DocumentType.LBA
        assert any("2024-03-15" in w for w in rec.warnings)

    def test_lba_window_elapsed_is_court_ready(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(lba_already_sent=True, lba_sent_date=date(2024, 3, 1))
        rec = recommender.recommend(claim, date(2024, 3, 16))
        assert rec.stage is ClaimStage.COURT_READY
        assert rec.primary_document is DocumentType.FORM_N1
        assert rec.urgency == 4

    def test_individual_defendant_waits_thirty_days(self, recommender, b2c_claim):
        claim = b2c_claim.with_changes(lba_already_sent=True, lba_sent_date=date(2024, 3, 1))
        assert recommender.recommend(claim, date(2024, 3, 20)).stage is ClaimStage.LBA_SENT_AWAITING_RESPONSE
        assert recommender.recommend(claim, date(2024, 4, 1)).stage is ClaimStage.COURT_READY

    def test_lba_event_counts_as_sent(self, recommender, b2b_claim):
        claim = with_event(b2b_claim, date(2024, 3, 1), TimelineEventType.LBA_SENT)
        assert recommender.recommend(claim, date(2024, 4, 1)).stage is ClaimStage.COURT_READY

    def test_lba_flag_without_date_never_court_ready(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(lba_already_sent=True)
        rec = recommender.recommend(claim, date(2025, 1, 1))
        assert rec.stage is ClaimStage.LBA_SENT_AWAITING_RESPONSE
        assert any("not recorded" in w for w in rec.warnings)

    def test_lba_sent_without_defendant_type(self, recommender):
        claim = make_claim(
            defendant=make_party("Unknown", None),
            lba_already_sent=True,
            lba_sent_date=date(2024, 3, 1),
        )
        rec = recommender.recommend(claim, date(2024, 6, 1))
        assert rec.stage is ClaimStage.LBA_SENT_AWAITING_RESPONSE
        assert any("defendant type" in w for w in rec.warnings)

    def test_missing_invoice_dates_warns(self, recommender):
        claim = make_claim(invoice=Invoice(amount=Decimal("500")))
        rec = recommender.recommend(claim, date(2024, 3, 1))
        assert rec.stage is ClaimStage.NO_CONTACT
        assert any("overdue status cannot be assessed" in w for w in rec.warnings)


# =============================================================================
# WARNINGS AND URGENCY
# =============================================================================

class TestWarnings:

    def test_prerequisites(self, recommender, b2b_claim):
        assert recommender.recommend(b2b_claim, date(2024, 2, 5)).prerequisites_met is False
        confirmed = b2b_claim.with_changes(interest_confirmed=True)
        assert recommender.recommend(confirmed, date(2024, 2, 5)).prerequisites_met is True

    def test_empty_timeline_warns(self, recommender):
        rec = recommender.recommend(make_claim(timeline=(), interest_confirmed=True), date(2024, 2, 5))
        assert rec.prerequisites_met is False
        assert any("timeline" in w for w in rec.warnings)

    def test_part_payment_warning(self, recommender, b2b_claim):
        claim = with_event(b2b_claim, date(2024, 2, 2), TimelineEventType.PART_PAYMENT)
        rec = recommender.recommend(claim, date(2024, 2, 5))
        assert any("installment plan" in w for w in rec.warnings)

    def test_over_small_claims_limit_warning(self, recommender, rates):
        claim = make_claim(invoice=Invoice(
            amount=Decimal("15000"), date_issued=date(2024, 1, 1), due_date=date(2024, 1, 31),
        ))
        as_of = date(2024, 2, 5)
        rec = recommender.recommend(claim, as_of, interest_for_claim(claim, as_of, rates))
        assert any("small claims limit" in w for w in rec.warnings)

    def test_limitation_close_is_maximum_urgency(self, recommender, b2b_claim):
        rec = recommender.recommend(b2b_claim, date(2029, 12, 1))
        assert rec.urgency == 5
        assert any("2030-01-31" in w for w in rec.warnings)


# =============================================================================
# USER OVERRIDE
# =============================================================================

class TestOverride:

    def test_user_choice_is_applied(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(
            selected_document_type=DocumentType.FORM_N1,
            user_selected_doc_type=True,
        )
        rec = recommender.recommend(claim, date(2024, 2, 5))
        assert rec.primary_document is DocumentType.POLITE_CHASER
        assert rec.applied_document is DocumentType.FORM_N1
        assert rec.overridden is True
        assert any(w.startswith("LBA not yet sent") for w in rec.warnings)

    def test_n1_during_response_window_warns(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(
            lba_already_sent=True,
            lba_sent_date=date(2024, 3, 1),
            selected_document_type=DocumentType.FORM_N1,
            user_selected_doc_type=True,
        )
        rec = recommender.recommend(claim, date(2024, 3, 5))
        assert rec.applied_document is DocumentType.FORM_N1
        assert any("response period has not ended" in w for w in rec.warnings)

    def test_choosing_recommended_document_adds_no_warning(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(
            selected_document_type=DocumentType.LBA,
            user_selected_doc_type=True,
            interest_confirmed=True,
        )
        rec = recommender.recommend(claim, date(2024, 2, 20))
        assert rec.overridden is True
        assert rec.warnings == []

    def test_selection_without_manual_flag_is_ignored(self, recommender, b2b_claim):
        claim = b2b_claim.with_changes(selected_document_type=DocumentType.FORM_N1)
        rec = recommender.recommend(claim, date(2024, 2, 5))
        assert rec.overridden is False
        assert rec.applied_document is DocumentType.POLITE_CHASER

    def test_module_function_matches_class(self, b2b_claim):
        as_of = date(2024, 2, 20)
        assert recommend_document(b2b_claim, as_of).to_dict() == DocumentRecommender().recommend(b2b_claim, as_of).to_dict()

    def test_serialises_enum_values(self, b2b_claim):
        data = recommend_document(b2b_claim, date(2024, 2, 20)).to_dict()
        assert data["stage"] == "lba_required"
        assert data["primary_document"] == "Letter Before Action"


class TestPartyTypes:

    def test_party_type_not_needed_for_recommendation(self, recommender):
        claim = make_claim(claimant=make_party("Sole Trader", PartyType.INDIVIDUAL))
        assert recommender.recommend(claim, date(2024, 2, 20)).stage is ClaimStage.LBA_REQUIRED
