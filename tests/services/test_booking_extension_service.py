from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from kosan.core.exceptions import ErrorCode, InvalidStateError, RequestAbortedError, UploadError, ValidationError
from kosan.schemas.common.enums import ExtensionState, PaymentMethod, PaymentType
from kosan.schemas.payment.payment_base import PaymentRecord
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.services.booking.booking_extension_service import ExtensionWorkflow

from conftest import payment_payload


def extend_calls(backend):
    return [call for call in backend.calls if call == ("POST", "/bookings/1/extend")]


@pytest.fixture
def confirmed_booking(backend, booking_service):
    backend.add_booking(
        status_pemesanan="Confirmed",
        payments=[payment_payload(id=1, status_pembayaran="Confirmed", bukti_transfer="/uploads/p.png")],
    )
    return booking_service.get_booking(1)


@pytest.fixture
def workflow(confirmed_booking, booking_repository, payment_repository, booking_service, config):
    return ExtensionWorkflow(
        confirmed_booking, booking_repository, payment_repository, booking_service, config=config
    )


class TestInputs:
    def test_preview_recomputes_from_start_date(self, workflow):
        preview = workflow.select_duration(1)

        assert workflow.state is ExtensionState.DURATION_SELECTED
        assert preview.current_end_date == date(2026, 2, 28)
        assert preview.new_end_date == date(2026, 3, 31)
        assert preview.new_due_date == date(2026, 3, 28)
        assert preview.cost == Decimal("1500000.00")

    def test_transfer_requires_proof(self, workflow, proof):
        workflow.select_duration(2)
        workflow.select_method(PaymentMethod.TRANSFER)
        assert workflow.state is ExtensionState.PROOF_REQUIRED

        workflow.attach_proof(proof)
        assert workflow.state is ExtensionState.DURATION_SELECTED

    def test_switching_to_cash_drops_proof(self, workflow, proof):
        workflow.select_duration(2)
        workflow.select_method(PaymentMethod.TRANSFER)
        workflow.attach_proof(proof)

        workflow.select_method(PaymentMethod.CASH)

        assert workflow.proof is None
        assert workflow.state is ExtensionState.DURATION_SELECTED

    def test_method_before_duration_is_rejected(self, workflow):
        with pytest.raises(InvalidStateError):
            workflow.select_method(PaymentMethod.CASH)
        assert workflow.state is ExtensionState.IDLE

    def test_zero_months_rejected(self, workflow):
        with pytest.raises(ValidationError):
            workflow.select_duration(0)
        assert workflow.state is ExtensionState.IDLE

    def test_gateway_not_offered_for_extensions(self, workflow):
        workflow.select_duration(1)
        with pytest.raises(ValidationError):
            workflow.select_method(PaymentMethod.GATEWAY)

    def test_bad_proof_is_rejected_on_attach(self, workflow):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        with pytest.raises(UploadError):
            workflow.attach_proof(ProofUpload("bukti.pdf", b"%PDF", "application/pdf"))
        assert workflow.state is ExtensionState.PROOF_REQUIRED

    def test_only_confirmed_bookings_can_be_extended(
        self, backend, booking_service, booking_repository, payment_repository, config
    ):
        backend.add_booking(status_pemesanan="Pending")
        pending = booking_service.get_booking(1)
        workflow = ExtensionWorkflow(pending, booking_repository, payment_repository, booking_service, config)

        with pytest.raises(InvalidStateError):
            workflow.select_duration(1)


class TestSubmit:
    def test_transfer_without_proof_never_submits(self, workflow, backend):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        seen = []
        original = backend.request

        def spy(*args, **kwargs):
            seen.append(workflow.state)
            return original(*args, **kwargs)

        backend.request = spy

        result = workflow.submit()

        assert not result.is_success
        assert result.error.code is ErrorCode.VALIDATION_ERROR
        assert result.error.field == "proof"
        assert workflow.state is ExtensionState.PROOF_REQUIRED
        assert ExtensionState.SUBMITTING not in seen
        assert extend_calls(backend) == []

    def test_cash_extension_refreshes_read_model(self, workflow, backend, booking_service):
        workflow.select_duration(2)
        workflow.select_method(PaymentMethod.CASH)

        result = workflow.submit()

        assert result.is_success
        assert result.data.type is PaymentType.EXTEND
        assert result.data.amount == Decimal("3000000.00")
        assert workflow.state is ExtensionState.SUCCESS
        view = booking_service.get_booking(1)
        assert view.actionable_payment.id == result.data.id
        # Duration only grows once an admin confirms the payment.
        assert view.duration_months == 1
        assert backend.calls[-1] == ("GET", "/bookings")

    def test_transfer_uploads_proof_to_new_payment(self, workflow, backend, proof):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        workflow.attach_proof(proof)

        result = workflow.submit()

        assert result.is_success
        payment = backend.bookings[1]["payments"][-1]
        assert payment["id"] == result.data.id
        assert payment["bukti_transfer"] == "/uploads/proofs/transfer.png"

    def test_partial_failure_is_surfaced_not_rolled_back(self, workflow, backend, booking_service, proof):
        backend.fail_upload_with = 500
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        workflow.attach_proof(proof)

        result = workflow.submit()

        assert not result.is_success
        assert result.error.code is ErrorCode.SERVER_ERROR
        assert result.message == "Failed to save proof locally: disk full"
        assert result.metadata["payment_created"] is True
        assert workflow.state is ExtensionState.FAILED
        # The pending extend payment is still on the server, waiting for proof.
        view = booking_service.get_booking(1)
        assert view.actionable_payment.id == result.metadata["payment_id"]
        assert view.requires_proof_upload

    def test_retry_after_partial_failure_reuses_payment(self, workflow, backend, proof):
        backend.fail_upload_with = 500
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        workflow.attach_proof(proof)
        workflow.submit()

        backend.fail_upload_with = None
        result = workflow.submit()

        assert result.is_success
        assert len(extend_calls(backend)) == 1
        assert workflow.state is ExtensionState.SUCCESS

    def test_timed_out_extend_refetches_payments(self, workflow, backend, booking_service):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        backend.lose_response_for.add(("POST", "/bookings/1/extend"))

        result = workflow.submit()

        assert result.error.code is ErrorCode.NETWORK_ERROR
        assert workflow.state is ExtensionState.FAILED
        view = booking_service.get_booking(1)
        assert view.actionable_payment.type is PaymentType.EXTEND

    def test_backend_refusal_moves_to_failed(self, workflow, backend):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        backend.bookings[1]["status_pemesanan"] = "Completed"

        result = workflow.submit()

        assert result.error.code is ErrorCode.VALIDATION_ERROR
        assert result.message == "only confirmed bookings can be extended"
        assert workflow.state is ExtensionState.FAILED
        assert workflow.error.message == result.message

    def test_duplicate_submit_is_rejected(self, confirmed_booking, config):
        bookings = MagicMock()
        payments = MagicMock()
        read_model = MagicMock()
        workflow = ExtensionWorkflow(confirmed_booking, bookings, payments, read_model, config)
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        nested = {}

        def extend(*args, **kwargs):
            nested["result"] = workflow.submit()
            return PaymentRecord.from_wire(payment_payload(id=200, tipe_pembayaran="extend"))

        bookings.extend_booking.side_effect = extend

        result = workflow.submit()

        assert result.is_success
        assert nested["result"].error.code is ErrorCode.INVALID_STATE
        bookings.extend_booking.assert_called_once()

    def test_submit_after_success_is_rejected(self, workflow):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        workflow.submit()

        assert workflow.submit().error.code is ErrorCode.INVALID_STATE


class TestDispose:
    def test_response_after_unmount_is_not_applied(self, workflow, backend, booking_service):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        original = backend.request

        def respond_then_unmount(*args, **kwargs):
            response = original(*args, **kwargs)
            workflow.dispose()
            return response

        backend.request = respond_then_unmount

        result = workflow.submit()

        assert result.error.code is ErrorCode.REQUEST_ABORTED
        assert workflow.state is ExtensionState.SUBMITTING
        assert workflow.error is None
        assert booking_service.cache.peek("42", "bookings") is None

    def test_disposed_workflow_does_not_submit(self, workflow, backend):
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.CASH)
        workflow.dispose()

        result = workflow.submit()

        assert result.error.code is ErrorCode.REQUEST_ABORTED
        assert extend_calls(backend) == []

    def test_abort_during_upload_keeps_state(self, confirmed_booking, config, proof):
        bookings = MagicMock()
        payments = MagicMock()
        read_model = MagicMock()
        bookings.extend_booking.return_value = PaymentRecord.from_wire(
            payment_payload(id=200, tipe_pembayaran="extend")
        )
        payments.upload_payment_proof.side_effect = RequestAbortedError("extension form closed")
        workflow = ExtensionWorkflow(confirmed_booking, bookings, payments, read_model, config)
        workflow.select_duration(1)
        workflow.select_method(PaymentMethod.TRANSFER)
        workflow.attach_proof(proof)

        result = workflow.submit()

        assert result.error.code is ErrorCode.REQUEST_ABORTED
        assert workflow.state is ExtensionState.SUBMITTING
        read_model.invalidate.assert_called_once()
