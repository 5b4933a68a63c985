"""
Tests for order finalization.

Preconditions are checked in order (first failure wins); on success the
queue is flushed before the terminal status is requested.
"""

from decimal import Decimal

import pytest

from app.config import settings
from app.schemas.work_order import Answer, Step
from app.services.gps_tracking_service import GeolocationUnavailable
from app.services.order_execution.finalization import (
    FinalizationError,
    check_preconditions,
    is_first_visit_no_resident,
    terminal_status_for,
)
from tests.factories import HappyPathRecordFactory, InspectionRecordFactory, InstalledRecordFactory
from tests.order_execution.fakes import FakeGeolocation, fire_timer

NO = Answer.NO
SIGNATURE = "data:image/png;base64,iVBORw0KGgo="


class TestPreconditions:
    def test_incomplete_installation_redirects_to_step_3(self):
        """Scenario C: normal path without a new meter serial."""
        record = HappyPathRecordFactory(new_meter_serial="", new_reading=Decimal("0"), signature=SIGNATURE)
        failure = check_preconditions(record, evidence_count=3, min_evidence=2)

        assert failure.error == FinalizationError.INCOMPLETE_INSTALLATION
        assert failure.error.value == "incomplete installation data"
        assert failure.redirect_step == Step.INSTALLATION

    def test_missing_reading_is_incomplete(self):
        record = HappyPathRecordFactory(new_meter_serial="NEW-1", new_reading=None)
        failure = check_preconditions(record, evidence_count=3, min_evidence=2)
        assert failure.error == FinalizationError.INCOMPLETE_INSTALLATION

    def test_early_exit_needs_motive(self):
        record = HappyPathRecordFactory(client_accepts_change=NO)
        failure = check_preconditions(record, evidence_count=3, min_evidence=2)

        assert failure.error == FinalizationError.MISSING_CLOSURE_MOTIVE
        assert failure.redirect_step is None

    def test_insufficient_evidence_regardless_of_signature(self):
        """Scenario E: motive 9 with one photo."""
        for signature in (None, SIGNATURE):
            record = InspectionRecordFactory(resident_present=NO, closure_motive=9, signature=signature)
            failure = check_preconditions(record, evidence_count=1, min_evidence=2)
            assert failure.error == FinalizationError.INSUFFICIENT_EVIDENCE

    def test_installation_checked_before_evidence(self):
        record = HappyPathRecordFactory()
        failure = check_preconditions(record, evidence_count=0, min_evidence=2)
        assert failure.error == FinalizationError.INCOMPLETE_INSTALLATION

    def test_signature_required(self):
        record = InstalledRecordFactory(signature="   ")
        failure = check_preconditions(record, evidence_count=2, min_evidence=2)
        assert failure.error == FinalizationError.SIGNATURE_REQUIRED

    def test_first_visit_no_resident_exempt_from_signature(self):
        record = InspectionRecordFactory(resident_present=NO, closure_motive=1)
        assert is_first_visit_no_resident(record)
        assert check_preconditions(record, evidence_count=2, min_evidence=2) is None

    def test_exemption_uses_suggestion_when_motive_unset(self):
        record = InspectionRecordFactory(resident_present=NO)
        assert is_first_visit_no_resident(record)

    def test_second_visit_not_exempt(self):
        record = InspectionRecordFactory(resident_present=NO, closure_motive=9)
        assert not is_first_visit_no_resident(record)
        failure = check_preconditions(record, evidence_count=2, min_evidence=2)
        assert failure.error == FinalizationError.SIGNATURE_REQUIRED

    def test_minimum_evidence_from_settings(self):
        record = InstalledRecordFactory(signature=SIGNATURE)
        assert check_preconditions(record, evidence_count=settings.MIN_EVIDENCE_COUNT) is None

    def test_terminal_status(self):
        assert terminal_status_for(InspectionRecordFactory(closure_motive=1)) == settings.STATUS_SECOND_VISIT_PENDING
        assert terminal_status_for(InspectionRecordFactory(closure_motive=8)) == settings.STATUS_CLOSED_BY_AGENT
        assert terminal_status_for(InspectionRecordFactory(closure_motive=9)) == settings.STATUS_CLOSED_BY_AGENT


class TestFinalize:
    @pytest.mark.asyncio
    async def test_first_visit_no_resident(self, make_controller, store, now):
        """Scenario D: motive 1, two photos, no signature."""
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=1)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=2)

        assert result.success
        assert result.status == "SECOND VISIT PENDING"
        assert controller.record.first_visit_at == now
        assert controller.record.finalized_at is None
        assert store.persisted["first_visit_at"] == now
        assert store.status_calls == [(record.id, "SECOND VISIT PENDING")]
        assert controller.finalized
        # Second visit pending orders stay editable for the return visit
        assert not controller.read_only

    @pytest.mark.asyncio
    async def test_installation_closes_order(self, make_controller, store, now, here):
        record = InstalledRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record, geolocation=None)

        result = await controller.finalize(evidence_count=2)

        assert result.success
        assert result.status == settings.STATUS_CLOSED_BY_AGENT
        assert controller.record.closure_motive == 8
        assert controller.record.finalized_at == now
        assert store.persisted["closure_motive"] == 8
        assert store.persisted["current_step"] == 4
        assert controller.read_only

    @pytest.mark.asyncio
    async def test_fields_flushed_before_status(self, make_controller, store, scheduler):
        record = InstalledRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record)
        await controller.update_fields({"agent_notes": "regulator replaced"})
        assert controller.queue.has_pending

        order = []
        original_update, original_status = store.update_order, store.set_order_status

        async def tracked_update(order_id, fields):
            order.append("update")
            await original_update(order_id, fields)

        async def tracked_status(order_id, status):
            order.append("status")
            await original_status(order_id, status)

        store.update_order = tracked_update
        store.set_order_status = tracked_status

        result = await controller.finalize(evidence_count=2)

        assert result.success
        assert order == ["update", "status"]
        assert store.persisted["agent_notes"] == "regulator replaced"
        assert not controller.queue.has_pending
        assert scheduler.active == []

    @pytest.mark.asyncio
    async def test_captures_position_when_missing(self, make_controller, store, here):
        geolocation = FakeGeolocation(position=here)
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=1)
        controller = make_controller(record, geolocation=geolocation)

        result = await controller.finalize(evidence_count=2)

        assert result.success
        assert geolocation.calls == 1
        assert store.persisted["latitude"] == here.latitude
        assert store.persisted["longitude"] == here.longitude

    @pytest.mark.asyncio
    async def test_existing_coordinates_kept(self, make_controller, here):
        geolocation = FakeGeolocation(position=here)
        record = InspectionRecordFactory(
            current_step=4, resident_present=NO, closure_motive=1, latitude=1.5, longitude=2.5
        )
        controller = make_controller(record, geolocation=geolocation)

        await controller.finalize(evidence_count=2)
        assert geolocation.calls == 0
        assert controller.record.latitude == 1.5

    @pytest.mark.asyncio
    async def test_geolocation_failure_is_not_fatal(self, make_controller, store):
        geolocation = FakeGeolocation(error=GeolocationUnavailable("timeout"))
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=1)
        controller = make_controller(record, geolocation=geolocation)

        result = await controller.finalize(evidence_count=2)

        assert result.success
        assert controller.record.latitude is None
        assert "latitude" not in store.persisted

    @pytest.mark.asyncio
    async def test_validation_failure_redirects_controller(self, make_controller, store):
        """Scenario C through the controller: moves back to installation."""
        record = HappyPathRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=2)

        assert not result.success
        assert result.is_validation_error
        assert result.error == FinalizationError.INCOMPLETE_INSTALLATION
        assert controller.step == Step.INSTALLATION
        assert store.status_calls == []
        assert not controller.finalized

    @pytest.mark.asyncio
    async def test_insufficient_evidence_stays_on_closing(self, make_controller, store):
        """Scenario E through the controller."""
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=9, signature=SIGNATURE)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=1)

        assert result.error == FinalizationError.INSUFFICIENT_EVIDENCE
        assert controller.step == Step.CLOSING
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_unsaved_fields_abort_before_status(self, make_controller, store):
        store.fail_updates = 1
        record = InstalledRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=2)

        assert not result.success
        assert result.error == FinalizationError.SAVE_FAILED
        assert not result.is_validation_error
        assert store.status_calls == []
        assert controller.record.finalized_at is None
        assert not controller.finalized

    @pytest.mark.asyncio
    async def test_rejected_status_is_fatal_and_retryable(self, make_controller, store, now):
        store.fail_status = True
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=1)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=2)

        assert not result.success
        assert result.error == FinalizationError.STATUS_REJECTED
        assert not controller.finalized
        # The first visit stamp is withdrawn so rule 1 still applies on retry
        assert controller.record.first_visit_at is None
        assert store.persisted["first_visit_at"] is None
        assert controller.suggestion == 1

        store.fail_status = False
        retry = await controller.finalize(evidence_count=2)
        assert retry.success
        assert controller.record.first_visit_at == now

    @pytest.mark.asyncio
    async def test_unknown_status_is_fatal(self, store, make_controller):
        store.known_statuses = {settings.STATUS_IN_EXECUTION}
        record = InstalledRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record)

        result = await controller.finalize(evidence_count=2)
        assert result.error == FinalizationError.STATUS_REJECTED
        assert "Unknown order status" in result.message

    @pytest.mark.asyncio
    async def test_finalized_controller_ignores_navigation(self, make_controller, store):
        record = InspectionRecordFactory(current_step=4, resident_present=NO, closure_motive=1)
        controller = make_controller(record)
        await controller.finalize(evidence_count=2)
        writes = len(store.updates)

        assert await controller.go_to(Step.INSPECTION) == Step.CLOSING
        assert len(store.updates) == writes

    @pytest.mark.asyncio
    async def test_failed_save_retried_by_timer(self, make_controller, store, scheduler):
        store.fail_updates = 1
        record = InstalledRecordFactory(current_step=4, signature=SIGNATURE)
        controller = make_controller(record)

        await controller.finalize(evidence_count=2)
        await fire_timer(controller.queue, scheduler)

        assert store.persisted["closure_motive"] == 8
        assert store.persisted["finalized_at"] is None
