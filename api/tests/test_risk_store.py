"""Tests for the risk record store (service level)."""
from datetime import datetime

import pytest

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.models.audit_log import AuditLog
from app.models.risk import Risk, RiskReviewEntry, RiskTreatment


class TestCreate:

    def test_create_computes_level_and_code(self, store, admin_ctx, risk_payload, sidecars):
        risk = store.create(admin_ctx, risk_payload)

        assert risk.code == "R-001"
        assert risk.risk_level == "high"
        assert risk.risk_score == 12
        assert risk.status == "identified"
        assert risk.residual_risk_level is None
        assert sidecars.pending == ["audit:Risk:CREATE"]

    def test_codes_follow_highest_suffix(self, store, admin_ctx, risk_payload, sample_risk, db_session):
        sample_risk.code = "R-007"
        db_session.commit()

        risk = store.create(admin_ctx, risk_payload)
        assert risk.code == "R-008"

    def test_code_collision_raises_conflict(
        self, store, admin_ctx, risk_payload, sample_risk, sidecars, db_session, monkeypatch
    ):
        monkeypatch.setattr(store, "_next_code", lambda ctx: "R-001")

        with pytest.raises(ConflictError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "code"
        assert db_session.query(Risk).count() == 1
        assert sidecars.pending == []

        monkeypatch.undo()
        assert store.create(admin_ctx, risk_payload).code == "R-002"

    def test_codes_are_per_tenant(self, store, admin_ctx, risk_payload, other_tenant_risk):
        risk = store.create(admin_ctx, risk_payload)
        assert risk.code == "R-001"

    def test_create_writes_audit_after_drain(self, store, admin_ctx, risk_payload, sidecars, db_session):
        risk = store.create(admin_ctx, risk_payload)
        assert db_session.query(AuditLog).count() == 0

        assert sidecars.drain() == 1
        log = db_session.query(AuditLog).one()
        assert log.action == "CREATE"
        assert log.entity_type == "Risk"
        assert log.entity_id == risk.risk_id
        assert log.tenant_id == admin_ctx.tenant_id
        assert log.changes["risk_level"] == "high"

    def test_critical_risk_notifies(self, store, admin_ctx, risk_payload, sidecars, notifier):
        risk_payload.update(probability=5, impact=5)
        risk = store.create(admin_ctx, risk_payload)
        sidecars.drain()

        assert risk.risk_level == "critical"
        events = [event for event, _ in notifier.events]
        assert events == ["risk_critical"]

    def test_assignment_notifies(self, store, admin_ctx, risk_payload, junior_user, sidecars, notifier):
        risk_payload["responsible_id"] = junior_user.user_id
        store.create(admin_ctx, risk_payload)
        sidecars.drain()

        event, payload = notifier.events[0]
        assert event == "risk_assigned"
        assert payload["responsible_id"] == junior_user.user_id

    def test_monitoring_frequency_schedules_next_review(self, store, admin_ctx, risk_payload):
        risk_payload["monitoring_frequency"] = "quarterly"
        risk = store.create(admin_ctx, risk_payload)
        assert risk.next_review_date is not None
        assert risk.next_review_date > risk.created_at

    def test_residual_level_computed_on_read(self, store, admin_ctx, risk_payload):
        risk_payload.update(residual_probability=1, residual_impact=3)
        risk = store.create(admin_ctx, risk_payload)
        assert risk.residual_risk_level == "low"
        assert risk.residual_risk_score == 3

    @pytest.mark.parametrize("field", ["title", "description", "category", "probability", "impact"])
    def test_required_fields(self, store, admin_ctx, risk_payload, field, db_session):
        del risk_payload[field]
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == field
        assert db_session.query(Risk).count() == 0

    def test_blank_title_rejected(self, store, admin_ctx, risk_payload):
        risk_payload["title"] = "   "
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "title"

    def test_out_of_range_not_clamped(self, store, admin_ctx, risk_payload, db_session):
        risk_payload["probability"] = 6
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "probability"
        assert db_session.query(Risk).count() == 0

    def test_unknown_category_rejected(self, store, admin_ctx, risk_payload):
        risk_payload["category"] = "reputational"
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "category"

    def test_level_cannot_be_supplied(self, store, admin_ctx, risk_payload):
        risk_payload["risk_level"] = "low"
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "risk_level"

    def test_responsible_must_be_in_tenant(self, store, admin_ctx, risk_payload, other_admin_user):
        risk_payload["responsible_id"] = other_admin_user.user_id
        with pytest.raises(ValidationError) as exc_info:
            store.create(admin_ctx, risk_payload)
        assert exc_info.value.field == "responsible_id"

    def test_viewer_cannot_create(self, store, viewer_user, ctx_for, risk_payload, db_session):
        with pytest.raises(PermissionDeniedError):
            store.create(ctx_for(viewer_user), risk_payload)
        assert db_session.query(Risk).count() == 0


class TestUpdate:

    def test_probability_change_recomputes_level(self, store, admin_ctx, sample_risk):
        risk = store.update(admin_ctx, sample_risk.risk_id, {"probability": 5, "impact": 5})
        assert risk.risk_level == "critical"

    def test_single_axis_change_uses_stored_other_axis(self, store, admin_ctx, sample_risk):
        risk = store.update(admin_ctx, sample_risk.risk_id, {"impact": 1})
        assert (risk.probability, risk.impact) == (3, 1)
        assert risk.risk_level == "low"

    def test_absent_fields_untouched(self, store, admin_ctx, sample_risk):
        risk = store.update(admin_ctx, sample_risk.risk_id, {"title": "Restore drill missing"})
        assert risk.title == "Restore drill missing"
        assert risk.description == "Nightly backups have never been restored end to end."
        assert risk.risk_level == "high"

    def test_update_audits_diff(self, store, admin_ctx, sample_risk, sidecars, db_session):
        store.update(admin_ctx, sample_risk.risk_id, {"impact": 5})
        sidecars.drain()

        log = db_session.query(AuditLog).one()
        assert log.action == "UPDATE"
        assert log.changes["impact"] == {"old": 4, "new": 5}
        # 3 x 5 stays high; unchanged fields are left out of the diff
        assert "risk_level" not in log.changes
        assert "probability" not in log.changes

    def test_status_change_action(self, store, admin_ctx, sample_risk, sidecars, db_session):
        store.update(admin_ctx, sample_risk.risk_id, {"status": "treating"})
        sidecars.drain()

        log = db_session.query(AuditLog).one()
        assert log.action == "STATUS_CHANGE"
        assert log.changes["status"] == {"old": "identified", "new": "treating"}

    def test_closed_is_terminal(self, store, admin_ctx, sample_risk):
        store.update(admin_ctx, sample_risk.risk_id, {"status": "closed"})
        with pytest.raises(ValidationError) as exc_info:
            store.update(admin_ctx, sample_risk.risk_id, {"status": "monitoring"})
        assert exc_info.value.field == "status"

    def test_closed_risk_other_fields_editable(self, store, admin_ctx, sample_risk):
        store.update(admin_ctx, sample_risk.risk_id, {"status": "closed"})
        risk = store.update(admin_ctx, sample_risk.risk_id, {"treatment_plan": "Archived"})
        assert risk.treatment_plan == "Archived"
        assert risk.status == "closed"

    def test_closing_keeps_treatments(self, store, ledger, admin_ctx, sample_risk):
        ledger.add_treatment(admin_ctx, sample_risk.risk_id, "Quarterly restore drill")
        risk = store.update(admin_ctx, sample_risk.risk_id, {"status": "closed"})
        assert len(risk.treatments) == 1
        assert risk.treatments[0].status == "planned"

    def test_unknown_status_rejected(self, store, admin_ctx, sample_risk):
        with pytest.raises(ValidationError) as exc_info:
            store.update(admin_ctx, sample_risk.risk_id, {"status": "mitigated"})
        assert exc_info.value.field == "status"

    def test_unknown_field_rejected(self, store, admin_ctx, sample_risk):
        with pytest.raises(ValidationError) as exc_info:
            store.update(admin_ctx, sample_risk.risk_id, {"owner": "someone"})
        assert exc_info.value.field == "owner"

    def test_residual_out_of_range(self, store, admin_ctx, sample_risk, db_session):
        with pytest.raises(ValidationError):
            store.update(admin_ctx, sample_risk.risk_id, {"residual_probability": 6})
        db_session.refresh(sample_risk)
        assert sample_risk.residual_probability is None

    def test_reassignment_notifies_once(self, store, admin_ctx, sample_risk, junior_user, sidecars, notifier):
        store.update(admin_ctx, sample_risk.risk_id, {"responsible_id": junior_user.user_id})
        store.update(admin_ctx, sample_risk.risk_id, {"responsible_id": junior_user.user_id})
        sidecars.drain()

        assert [event for event, _ in notifier.events] == ["risk_assigned"]

    def test_next_review_date_accepts_date(self, store, admin_ctx, sample_risk):
        risk = store.update(
            admin_ctx, sample_risk.risk_id, {"next_review_date": datetime(2026, 12, 1).date()}
        )
        assert risk.next_review_date == datetime(2026, 12, 1)


class TestReadDeleteAndScoping:

    def test_get_includes_children(self, store, ledger, review_log, admin_ctx, sample_risk):
        ledger.add_treatment(admin_ctx, sample_risk.risk_id, "Restore drill")
        review_log.record_review(admin_ctx, sample_risk.risk_id, 2, 4, "treating")

        risk = store.get(admin_ctx, sample_risk.risk_id)
        assert len(risk.treatments) == 1
        assert len(risk.reviews) == 1

    def test_other_tenant_risk_not_found(self, store, admin_ctx, other_tenant_risk):
        with pytest.raises(NotFoundError):
            store.get(admin_ctx, other_tenant_risk.risk_id)

    def test_permission_checked_before_existence(self, store, junior_user, ctx_for):
        with pytest.raises(PermissionDeniedError):
            store.delete(ctx_for(junior_user), 99999)

    def test_delete_cascades(self, store, ledger, review_log, admin_ctx, sample_risk, db_session, sidecars):
        ledger.add_treatment(admin_ctx, sample_risk.risk_id, "Restore drill")
        review_log.record_review(admin_ctx, sample_risk.risk_id, 2, 4, "treating")
        risk_id = sample_risk.risk_id

        store.delete(admin_ctx, risk_id)
        sidecars.drain()

        assert db_session.query(Risk).filter(Risk.risk_id == risk_id).count() == 0
        assert db_session.query(RiskTreatment).count() == 0
        assert db_session.query(RiskReviewEntry).count() == 0
        delete_log = db_session.query(AuditLog).filter(AuditLog.action == "DELETE").one()
        assert delete_log.changes["treatments_removed"] == 1
        assert delete_log.changes["reviews_removed"] == 1

    def test_list_filters(self, store, admin_ctx, risk_payload):
        store.create(admin_ctx, risk_payload)
        risk_payload.update(probability=1, impact=1, category="legal")
        store.create(admin_ctx, risk_payload)

        assert len(store.list_risks(admin_ctx)) == 2
        assert [r.risk_level for r in store.list_risks(admin_ctx, risk_level="low")] == ["low"]
        assert [r.category for r in store.list_risks(admin_ctx, category="legal")] == ["legal"]

    def test_list_rejects_unknown_filter_value(self, store, admin_ctx):
        with pytest.raises(ValidationError):
            store.list_risks(admin_ctx, risk_level="severe")

    def test_list_is_tenant_scoped(self, store, admin_ctx, sample_risk, other_tenant_risk):
        risks = store.list_risks(admin_ctx)
        assert [r.risk_id for r in risks] == [sample_risk.risk_id]
