"""Ordering session lifecycle: ids, lookup, cache, fallback and cleanup."""

import pytest
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from app.core.cache import CacheKeys
from app.core.errors import InvalidSessionId, NotFound, ValidationFailed
from app.db.base import utcnow
from app.models.ordering_session import OrderingSession
from app.schemas.session import SessionResponse
from app.services.session_service import SessionService


@pytest.fixture
def service(db_session, cache):
    return SessionService(db_session, cache)


def _raw_session(db_session, session_id, table="5", shop_id=1, status="active", expires_in=timedelta(hours=2)):
    now = utcnow()
    record = OrderingSession(
        id=session_id,
        table_number=table,
        shop_id=shop_id,
        status=status,
        created_at=now,
        last_activity=now,
        expires_at=now + expires_in,
        session_metadata={},
    )
    db_session.add(record)
    db_session.commit()
    return record


# ============== Id format ==============

class TestSessionIds:
    def test_generated_id_is_valid(self):
        session_id = SessionService.generate_id("12")
        assert session_id.startswith("session-12-")
        assert SessionService.validate_id(session_id)
        assert SessionService.extract_table_number(session_id) == "12"

    def test_table_with_dash(self):
        session_id = SessionService.generate_id("patio-3")
        assert SessionService.extract_table_number(session_id) == "patio-3"

    def test_current_and_legacy_formats(self):
        assert SessionService.validate_id("session-A1-1700000000000-abc123")
        assert SessionService.validate_id("session-1700000000000-abc123")
        assert not SessionService.validate_id("session-A1-abc")

    def test_legacy_id_accepted_without_table(self):
        legacy = "session-1700000000000-abc123def"
        assert SessionService.validate_id(legacy)
        assert SessionService.extract_table_number(legacy) is None

    @pytest.mark.parametrize("bad", [None, "", "abc", "session-5-123-abcdef", "session-5-1700000000000-ab"])
    def test_invalid_ids(self, bad):
        assert not SessionService.validate_id(bad)

    def test_bad_table_number_rejected(self):
        with pytest.raises(ValidationFailed):
            SessionService.generate_id("table 5")


# ============== Create / get ==============

class TestCreateAndGet:
    def test_create_links_existing_desk(self, service, shop, desk):
        lookup = service.create("5", shop.id)
        assert lookup.status == "active"
        assert lookup.desk_id == desk.id
        assert lookup.expires_at > utcnow()

    def test_create_unknown_shop(self, service, shop):
        with pytest.raises(NotFound):
            service.create("5", 999)

    def test_create_bounds_expiration(self, service, shop):
        with pytest.raises(ValidationFailed):
            service.create("5", shop.id, expiration_hours=25)

    def test_get_reads_through_cache(self, service, cache, shop):
        lookup = service.create("5", shop.id)
        assert cache.get(CacheKeys.session(lookup.id)) is not None
        found = service.get(lookup.id)
        assert found.source == "cache"
        assert found.table_number == "5"

    def test_get_falls_back_to_database(self, service, cache, shop):
        lookup = service.create("5", shop.id)
        cache.delete(CacheKeys.session(lookup.id))
        found = service.get(lookup.id)
        assert found.source == "database"

    def test_get_invalid_format_raises(self, service):
        with pytest.raises(InvalidSessionId):
            service.get("not-a-session")

    def test_get_expired_returns_none(self, service, db_session, shop):
        _raw_session(db_session, "session-5-1700000000000-expired01", expires_in=timedelta(hours=-1))
        assert service.get("session-5-1700000000000-expired01") is None

    def test_get_or_create_reuses_active(self, service, shop):
        first = service.get_or_create("5", shop.id)
        second = service.get_or_create("5", shop.id)
        assert first.id == second.id

    def test_get_or_create_new_table(self, service, shop):
        first = service.get_or_create("5", shop.id)
        other = service.get_or_create("6", shop.id)
        assert first.id != other.id


class TestFallback:
    def test_database_error_serves_fallback(self, service, db_session, shop, monkeypatch):
        session_id = SessionService.generate_id("7")

        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        monkeypatch.setattr(db_session, "query", broken_query)
        lookup = service.get(session_id)
        assert lookup.is_fallback
        assert lookup.source == "fallback"
        assert lookup.table_number == "7"
        assert lookup.metadata["fallback"] is True
        assert SessionResponse.model_validate(lookup).fallback is True

    def test_legacy_id_fallback_has_unknown_table(self, service, db_session, monkeypatch):
        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is down"))

        monkeypatch.setattr(db_session, "query", broken_query)
        lookup = service.get("session-1700000000000-abc123def")
        assert lookup.table_number == "unknown"


# ============== Activity / completion ==============

class TestActivityAndCompletion:
    def test_update_activity(self, service, db_session, shop):
        lookup = service.create("5", shop.id)
        assert service.update_activity(lookup.id) is True

    def test_update_activity_missing(self, service, shop):
        assert service.update_activity(SessionService.generate_id("5")) is False

    def test_complete_evicts_cache(self, service, cache, shop):
        lookup = service.create("5", shop.id)
        assert service.complete(lookup.id) is True
        assert cache.get(CacheKeys.session(lookup.id)) is None
        assert service.get(lookup.id) is None

    def test_complete_twice(self, service, shop):
        lookup = service.create("5", shop.id)
        service.complete(lookup.id)
        assert service.complete(lookup.id) is False


# ============== Administration ==============

class TestAdministration:
    def test_cleanup_expired(self, service, db_session, shop):
        _raw_session(db_session, "session-5-1700000000000-old000001", expires_in=timedelta(hours=-3))
        _raw_session(db_session, "session-5-1700000000001-flagged01", status="expired")
        keep = service.create("5", shop.id)

        assert service.cleanup_expired() == 2
        remaining = [s.id for s in db_session.query(OrderingSession).all()]
        assert remaining == [keep.id]

    def test_cleanup_expired_nothing(self, service, shop):
        service.create("5", shop.id)
        assert service.cleanup_expired() == 0

    def test_reset_table_sessions(self, service, db_session, shop):
        lookup = service.create("5", shop.id)
        other = service.create("6", shop.id)
        assert service.reset_table_sessions("5", shop.id) == 1
        assert service.get(lookup.id) is None
        assert service.get(other.id) is not None
        # rows are kept
        assert db_session.get(OrderingSession, lookup.id).status == "expired"

    def test_cleanup_problematic(self, service, db_session, shop):
        _raw_session(db_session, "bogus-id", table="5")
        _raw_session(db_session, "session-5-1700000000000-stale0001", expires_in=timedelta(hours=-1))
        good = service.create("5", shop.id)

        report = service.cleanup_problematic()
        assert report.cleaned == 2
        assert any("Invalid session ID format" in e for e in report.errors)
        assert any("Expired session still marked as active" in e for e in report.errors)
        assert [s.id for s in db_session.query(OrderingSession).all()] == [good.id]

    def test_list_for_shop_is_tenant_scoped(self, service, shop, other_shop):
        service.create("5", shop.id)
        service.create("5", other_shop.id)
        assert len(service.list_for_shop(shop.id)) == 1

    def test_delete(self, service, shop, other_shop):
        lookup = service.create("5", shop.id)
        assert service.delete(lookup.id, other_shop.id) is False
        assert service.delete(lookup.id, shop.id) is True
