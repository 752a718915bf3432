"""
Deadline Engine Tests

Verifies:
1. Invoice-anchored and court deadlines land on the statutory dates
2. Scheduling is idempotent: ids derive from (claim, type, date)
3. Active types are never duplicated; dismissed dates are never re-proposed
4. Upcoming/overdue queries filter by status and window
5. The SQL store behaves like the in-memory store
"""
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import db_models  # noqa: F401
from app.models.claim import DeadlineStatus, DeadlineType, Invoice, PartyType
from app.services.deadlines import (
    DeadlineEngine,
    DeadlineNotFoundError,
    InMemoryDeadlineStore,
    SqlDeadlineStore,
    deadline_id,
    make_deadline,
)
from app.services.legal import ValidationError

from conftest import make_claim, make_party


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    return DeadlineEngine()


@pytest.fixture
def sql_session():
    db_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=db_engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=db_engine)


def by_type(deadlines):
    return {d.type: d for d in deadlines}


# =============================================================================
# CANDIDATE DATES
# =============================================================================

class TestCandidateDates:

    def test_invoice_deadlines(self, engine, b2b_claim):
        found = by_type(engine.candidates(b2b_claim))
        assert found[DeadlineType.PAYMENT_DUE].due_date == date(2024, 1, 31)
        assert found[DeadlineType.FIRST_CHASER].due_date == date(2024, 2, 7)
        assert found[DeadlineType.FINAL_DEMAND].due_date == date(2024, 2, 14)
        assert found[DeadlineType.SEND_LBA].due_date == date(2024, 2, 28)
        assert found[DeadlineType.LIMITATION_EXPIRY].due_date == date(2030, 1, 31)
        assert DeadlineType.LBA_RESPONSE_EXPIRY not in found

    def test_lba_response_company_is_14_days(self, engine):
        claim = make_claim(lba_already_sent=True, lba_sent_date=date(2024, 3, 1))
        found = by_type(engine.candidates(claim))
        assert found[DeadlineType.LBA_RESPONSE_EXPIRY].due_date == date(2024, 3, 15)

    def test_lba_response_individual_is_30_days(self, engine, b2c_claim):
        claim = b2c_claim.with_changes(lba_already_sent=True, lba_sent_date=date(2024, 3, 1))
        found = by_type(engine.candidates(claim))
        assert found[DeadlineType.LBA_RESPONSE_EXPIRY].due_date == date(2024, 3, 31)

    def test_lba_response_requires_defendant_type(self, engine):
        claim = make_claim(
            defendant=make_party("Unknown", None),
            lba_already_sent=True,
            lba_sent_date=date(2024, 3, 1),
        )
        with pytest.raises(ValidationError) as exc:
            engine.candidates(claim)
        assert exc.value.fields == ["defendant.type"]

    def test_lba_flag_without_date_schedules_no_window(self, engine):
        claim = make_claim(lba_already_sent=True)
        assert DeadlineType.LBA_RESPONSE_EXPIRY not in by_type(engine.candidates(claim))

    def test_served_claim_without_acknowledgment(self, engine):
        claim = make_claim(claim_served_date=date(2024, 6, 3))
        found = by_type(engine.candidates(claim))
        assert found[DeadlineType.ACKNOWLEDGMENT_OF_SERVICE].due_date == date(2024, 6, 17)
        assert found[DeadlineType.DEFENCE_DUE].due_date == date(2024, 7, 1)
        assert found[DeadlineType.DEFAULT_JUDGMENT].due_date == date(2024, 7, 2)

    def test_acknowledgment_moves_defence_date(self, engine):
        claim = make_claim(claim_served_date=date(2024, 6, 3), acknowledgment_date=date(2024, 6, 20))
        found = by_type(engine.candidates(claim))
        assert found[DeadlineType.DEFENCE_DUE].due_date == date(2024, 7, 4)
        assert found[DeadlineType.DEFAULT_JUDGMENT].due_date == date(2024, 7, 5)

    def test_judgment_schedules_enforcement(self, engine):
        claim = make_claim(judgment_date=date(2024, 8, 1))
        found = by_type(engine.candidates(claim))
        assert found[DeadlineType.ENFORCEMENT].due_date == date(2024, 8, 15)

    def test_sorted_by_due_date(self, engine, b2b_claim):
        dates = [d.due_date for d in engine.candidates(b2b_claim)]
        assert dates == sorted(dates)

    def test_deadline_metadata_from_reference_table(self, engine, b2b_claim):
        deadline = by_type(engine.candidates(b2b_claim))[DeadlineType.LIMITATION_EXPIRY]
        assert deadline.title
        assert "Limitation Act 1980" in deadline.legal_reference
        assert deadline.status is DeadlineStatus.PENDING


# =============================================================================
# IDEMPOTENCE AND DEDUPLICATION
# =============================================================================

class TestIdempotence:

    def test_candidates_are_deterministic(self, engine, b2b_claim):
        first = engine.candidates(b2b_claim)
        second = engine.candidates(b2b_claim)
        assert first == second

    def test_id_derives_from_claim_type_and_date(self):
        a = deadline_id("claim-001", DeadlineType.SEND_LBA, date(2024, 2, 28))
        b = deadline_id("claim-001", DeadlineType.SEND_LBA, date(2024, 2, 28))
        c = deadline_id("claim-001", DeadlineType.SEND_LBA, date(2024, 2, 29))
        assert a == b
        assert a != c

    def test_schedule_twice_leaves_same_set(self, engine, b2b_claim):
        store = InMemoryDeadlineStore()
        engine.schedule(b2b_claim, store)
        after_first = store.list_for_claim(b2b_claim.claim_id)
        again = engine.schedule(b2b_claim, store)
        assert again == []
        assert store.list_for_claim(b2b_claim.claim_id) == after_first

    def test_existing_type_is_not_duplicated(self, engine, b2b_claim):
        existing = [make_deadline(b2b_claim.claim_id, DeadlineType.SEND_LBA, date(2024, 3, 10))]
        types = [d.type for d in engine.candidates(b2b_claim, existing)]
        assert DeadlineType.SEND_LBA not in types

    def test_completed_deadline_still_blocks_its_type(self, engine, b2b_claim):
        store = InMemoryDeadlineStore()
        engine.schedule(b2b_claim, store)
        chaser = by_type(store.list_for_claim(b2b_claim.claim_id))[DeadlineType.FIRST_CHASER]
        store.complete(chaser.id)
        assert DeadlineType.FIRST_CHASER not in by_type(engine.schedule(b2b_claim, store))

    def test_dismissed_date_is_not_reproposed(self, engine, b2b_claim):
        store = InMemoryDeadlineStore()
        engine.schedule(b2b_claim, store)
        chaser = by_type(store.list_for_claim(b2b_claim.claim_id))[DeadlineType.FIRST_CHASER]
        store.dismiss(chaser.id)

        assert engine.schedule(b2b_claim, store) == []

    def test_dismissed_type_returns_when_date_changes(self, engine, b2b_claim):
        store = InMemoryDeadlineStore()
        engine.schedule(b2b_claim, store)
        chaser = by_type(store.list_for_claim(b2b_claim.claim_id))[DeadlineType.FIRST_CHASER]
        store.dismiss(chaser.id)

        moved = b2b_claim.with_changes(invoice=Invoice(
            amount=b2b_claim.invoice.amount,
            date_issued=date(2024, 1, 1),
            due_date=date(2024, 2, 15),
        ))
        rescheduled = by_type(engine.schedule(moved, store))
        assert rescheduled[DeadlineType.FIRST_CHASER].due_date == date(2024, 2, 22)

    def test_apply_uses_collaborator(self, engine, b2b_claim):
        seen = []
        engine.apply(engine.candidates(b2b_claim), lambda d: seen.append(d) or d)
        assert len(seen) == 5


# =============================================================================
# QUERIES
# =============================================================================

class TestQueries:

    def test_upcoming_window_is_inclusive(self, engine, b2b_claim):
        deadlines = engine.candidates(b2b_claim)
        upcoming = engine.upcoming(deadlines, date(2024, 2, 7), days_ahead=7)
        assert [d.type for d in upcoming] == [DeadlineType.FIRST_CHASER, DeadlineType.FINAL_DEMAND]

    def test_upcoming_skips_non_pending(self, engine, b2b_claim):
        store = InMemoryDeadlineStore()
        engine.schedule(b2b_claim, store)
        chaser = by_type(store.list_for_claim(b2b_claim.claim_id))[DeadlineType.FIRST_CHASER]
        store.complete(chaser.id)
        upcoming = engine.upcoming(store.list_for_claim(b2b_claim.claim_id), date(2024, 2, 7))
        assert [d.type for d in upcoming] == [DeadlineType.FINAL_DEMAND]

    def test_overdue_counts_days(self, engine, b2b_claim):
        overdue = engine.overdue(engine.candidates(b2b_claim), date(2024, 2, 10))
        assert [(d.type, days) for d, days in overdue] == [
            (DeadlineType.PAYMENT_DUE, 10),
            (DeadlineType.FIRST_CHASER, 3),
        ]


# =============================================================================
# SQL STORE
# =============================================================================

class TestSqlDeadlineStore:

    def test_schedule_and_list(self, engine, b2b_claim, sql_session):
        store = SqlDeadlineStore(sql_session)
        scheduled = engine.schedule(b2b_claim, store)
        stored = store.list_for_claim(b2b_claim.claim_id)
        assert len(stored) == 5
        assert {d.id for d in stored} == {d.id for d in scheduled}

    def test_schedule_twice_is_idempotent(self, engine, b2b_claim, sql_session):
        store = SqlDeadlineStore(sql_session)
        engine.schedule(b2b_claim, store)
        first = store.list_for_claim(b2b_claim.claim_id)
        engine.schedule(b2b_claim, store)
        assert store.list_for_claim(b2b_claim.claim_id) == first

    def test_upsert_keeps_one_row_per_type(self, b2b_claim, sql_session):
        store = SqlDeadlineStore(sql_session)
        store.add_deadline(make_deadline(b2b_claim.claim_id, DeadlineType.SEND_LBA, date(2024, 2, 28)))
        store.add_deadline(make_deadline(b2b_claim.claim_id, DeadlineType.SEND_LBA, date(2024, 3, 5)))
        rows = store.list_for_claim(b2b_claim.claim_id)
        assert len(rows) == 1
        assert rows[0].due_date == date(2024, 3, 5)

    def test_dismiss_and_complete(self, engine, b2b_claim, sql_session):
        store = SqlDeadlineStore(sql_session)
        engine.schedule(b2b_claim, store)
        deadlines = by_type(store.list_for_claim(b2b_claim.claim_id))

        dismissed = store.dismiss(deadlines[DeadlineType.FIRST_CHASER].id)
        done = store.complete(deadlines[DeadlineType.PAYMENT_DUE].id)
        assert dismissed.status is DeadlineStatus.DISMISSED
        assert done.status is DeadlineStatus.DONE
        assert len(store.list_pending()) == 3

    def test_unknown_id_raises_not_found(self, sql_session):
        with pytest.raises(DeadlineNotFoundError) as exc:
            SqlDeadlineStore(sql_session).dismiss("missing")
        assert exc.value.to_dict()["error"] == "not_found"

    def test_defendant_type_change_does_not_alter_invoice_deadlines(self, engine, sql_session):
        store = SqlDeadlineStore(sql_session)
        engine.schedule(make_claim(), store)
        before = store.list_for_claim("claim-001")
        engine.schedule(make_claim(defendant=make_party("Jane Smith", PartyType.INDIVIDUAL)), store)
        assert store.list_for_claim("claim-001") == before


class TestSqlConcurrentUpsert:
    """Two sessions scheduling the same claim against one database file."""

    @pytest.fixture
    def sessions(self, tmp_path):
        db_engine = create_engine(f"sqlite:///{tmp_path / 'deadlines.db'}")
        Base.metadata.create_all(bind=db_engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
        first, second = factory(), factory()
        yield first, second
        first.close()
        second.close()
        db_engine.dispose()

    def race(self, monkeypatch, store, rival, rival_deadline):
        """The rival commits after `store` has looked for an active row and found none."""
        find_active = store._find_active
        calls = []

        def find_then_lose_race(deadline):
            if not calls:
                calls.append(deadline)
                rival.add_deadline(rival_deadline)
                return None
            return find_active(deadline)

        monkeypatch.setattr(store, "_find_active", find_then_lose_race)

    def test_different_due_dates_leave_one_active_row(self, sessions, monkeypatch):
        first, second = SqlDeadlineStore(sessions[0]), SqlDeadlineStore(sessions[1])
        self.race(monkeypatch, first, second, make_deadline("c1", DeadlineType.SEND_LBA, date(2024, 3, 1)))

        result = first.add_deadline(make_deadline("c1", DeadlineType.SEND_LBA, date(2024, 3, 8)))

        active = [d for d in second.list_for_claim("c1") if d.is_active]
        assert len(active) == 1
        assert active[0].due_date == date(2024, 3, 8)
        assert result.id == active[0].id

    def test_identical_candidates_do_not_fail(self, sessions, monkeypatch):
        first, second = SqlDeadlineStore(sessions[0]), SqlDeadlineStore(sessions[1])
        deadline = make_deadline("c1", DeadlineType.PAYMENT_DUE, date(2024, 1, 31))
        self.race(monkeypatch, first, second, deadline)

        assert first.add_deadline(deadline).id == deadline.id
        assert [d.id for d in second.list_for_claim("c1")] == [deadline.id]

    def test_index_rejects_second_active_row(self, sessions):
        session = sessions[0]
        for due in (date(2024, 3, 1), date(2024, 3, 8)):
            deadline = make_deadline("c1", DeadlineType.SEND_LBA, due)
            session.add(db_models.DeadlineDB(
                id=deadline.id, claim_id="c1", type=deadline.type,
                due_date=due, title=deadline.title, status=DeadlineStatus.PENDING,
            ))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_dismissed_rows_do_not_count(self, sessions):
        store = SqlDeadlineStore(sessions[0])
        old = store.add_deadline(make_deadline("c1", DeadlineType.SEND_LBA, date(2024, 3, 1)))
        store.dismiss(old.id)
        new = store.add_deadline(make_deadline("c1", DeadlineType.SEND_LBA, date(2024, 3, 8)))
        assert new.id != old.id
        assert len(store.list_for_claim("c1")) == 2
