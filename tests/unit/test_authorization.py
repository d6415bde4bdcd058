"""Unit tests for the PIN authorization flow"""

import asyncio

import pytest

from merchant_pos.domain.exceptions import (
    FlowCompletedError,
    GatewayProtocolError,
    GatewayRejectedError,
    InvalidAmountError,
    InvalidPinError,
    LockoutReached,
    SubmissionInProgressError,
)
from merchant_pos.domain.outcomes import (
    Declined,
    InsufficientFunds,
    Locked,
    NetworkError,
    PinIncorrect,
    Success,
    UnknownError,
)
from merchant_pos.flows.authorization import AuthorizationFlow, FlowState, SessionParams


def wrong_pin() -> GatewayRejectedError:
    return GatewayRejectedError(400, "Incorrect PIN")


async def test_successful_submission(transaction_gateway, session_params, payment_receipt):
    """Test success transitions to SUCCEEDED and leaves attempts untouched"""
    transaction_gateway.queue(payment_receipt)
    flow = AuthorizationFlow(transaction_gateway, session_params)

    outcome = await flow.submit("1234")

    assert outcome == Success(transaction_id="PAY-000001")
    assert flow.session.state == FlowState.SUCCEEDED
    assert flow.session.attempts_remaining == 7
    assert transaction_gateway.calls == [("BEN-1", "1234", "150.00", "Groceries")]


async def test_seven_wrong_pins_lock_the_session(transaction_gateway, session_params):
    """Test lockout happens exactly on the 7th consecutive incorrect PIN"""
    transaction_gateway.queue(*[wrong_pin() for _ in range(7)])
    flow = AuthorizationFlow(transaction_gateway, session_params)

    outcomes = [await flow.submit("1234") for _ in range(7)]

    assert outcomes == [PinIncorrect(6), PinIncorrect(5), PinIncorrect(4), PinIncorrect(3),
                        PinIncorrect(2), PinIncorrect(1), Locked()]
    assert flow.session.locked is True
    assert flow.session.attempts_remaining == 0
    assert flow.session.state == FlowState.LOCKED

    with pytest.raises(LockoutReached):
        await flow.submit("9999")
    assert len(transaction_gateway.calls) == 7


async def test_lock_invariant_holds_after_every_attempt(transaction_gateway, session_params):
    """Test locked iff attempts_remaining == 0, and attempts never go negative"""
    transaction_gateway.queue(*[wrong_pin() for _ in range(3)])
    flow = AuthorizationFlow(transaction_gateway, session_params, max_attempts=3)
    seen = []
    flow.subscribe(seen.append)

    for _ in range(3):
        await flow.submit("0000")

    for snapshot in seen:
        assert snapshot.locked == (snapshot.attempts_remaining == 0)
        assert snapshot.attempts_remaining >= 0


async def test_wrong_pin_clears_buffer_and_is_not_notified(transaction_gateway, session_params):
    """Test PinIncorrect is surfaced synchronously only"""
    transaction_gateway.queue(wrong_pin())
    flow = AuthorizationFlow(transaction_gateway, session_params)
    flow.update_pin("1234")

    outcome = await flow.submit()

    assert outcome == PinIncorrect(attempts_left=6)
    assert flow.session.pin == ""
    assert flow.session.state == FlowState.AWAITING_INPUT
    assert flow.take_outcome() is None


async def test_insufficient_funds_does_not_consume_attempt(transaction_gateway, session_params):
    """Test 400 'Insufficient Funds for account' -> InsufficientFunds, not locked"""
    transaction_gateway.queue(GatewayRejectedError(400, "Insufficient Funds for account"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    outcome = await flow.submit("1234")

    assert outcome == InsufficientFunds(message="Insufficient Funds for account")
    assert flow.session.attempts_remaining == 7
    assert flow.session.locked is False
    assert flow.session.state == FlowState.AWAITING_INPUT
    assert flow.session.pin == ""


async def test_insufficient_balance_phrase(transaction_gateway, session_params):
    transaction_gateway.queue(GatewayRejectedError(402, "INSUFFICIENT BALANCE"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    assert isinstance(await flow.submit("1234"), InsufficientFunds)


async def test_other_rejection_is_declined(transaction_gateway, session_params):
    transaction_gateway.queue(GatewayRejectedError(403, "Beneficiary account is not active"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    outcome = await flow.submit("1234")

    assert outcome == Declined(message="Beneficiary account is not active")
    assert flow.session.attempts_remaining == 7


async def test_incorrect_pin_wins_over_later_phrases(transaction_gateway, session_params):
    """Test classification order: incorrect PIN is checked first"""
    transaction_gateway.queue(GatewayRejectedError(400, "Incorrect PIN; insufficient funds"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    assert await flow.submit("1234") == PinIncorrect(attempts_left=6)


async def test_transport_error_never_decrements(transaction_gateway, session_params, transport_error):
    """Test network failures leave the attempt budget alone"""
    transaction_gateway.queue(transport_error, transport_error, wrong_pin())
    flow = AuthorizationFlow(transaction_gateway, session_params)

    assert await flow.submit("1234") == NetworkError()
    assert await flow.submit("1234") == NetworkError()
    assert flow.session.attempts_remaining == 7

    assert await flow.submit("1234") == PinIncorrect(attempts_left=6)


async def test_protocol_error_is_unknown_error(transaction_gateway, session_params):
    transaction_gateway.queue(GatewayProtocolError("Response body is not valid JSON"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    outcome = await flow.submit("1234")

    assert outcome == UnknownError(message="Response body is not valid JSON")
    assert flow.session.state == FlowState.AWAITING_INPUT
    assert flow.session.attempts_remaining == 7


async def test_outcome_notification_is_one_shot(transaction_gateway, session_params, transport_error):
    """Test take_outcome delivers each notified outcome exactly once"""
    transaction_gateway.queue(transport_error)
    flow = AuthorizationFlow(transaction_gateway, session_params)

    await flow.submit("1234")

    assert flow.take_outcome() == NetworkError()
    assert flow.take_outcome() is None
    assert flow.session.last_outcome == NetworkError()


async def test_locked_outcome_is_notified(transaction_gateway, session_params):
    transaction_gateway.queue(wrong_pin())
    flow = AuthorizationFlow(transaction_gateway, session_params, max_attempts=1)

    await flow.submit("1234")

    assert flow.take_outcome() == Locked()


@pytest.mark.parametrize("pin", ["", "123", "12345", "12a4", "１２３４"])
async def test_invalid_pin_is_rejected_locally(transaction_gateway, session_params, pin):
    """Test malformed PINs never reach the gateway and do not change state"""
    flow = AuthorizationFlow(transaction_gateway, session_params)
    before = flow.session

    with pytest.raises(InvalidPinError):
        await flow.submit(pin)

    assert flow.session is before
    assert transaction_gateway.calls == []


@pytest.mark.parametrize("amount", [None, "", "abc", "0", "-5.00", "NaN", "1.005"])
async def test_invalid_amount_blocks_submission(transaction_gateway, amount):
    """Test the caller is informed up front and submit is rejected"""
    params = SessionParams.from_navigation(amount=amount, beneficiary_id="BEN-1")
    flow = AuthorizationFlow(transaction_gateway, params)

    assert flow.session.amount is None
    assert flow.session.input_error
    assert flow.session.can_submit is False

    with pytest.raises(InvalidAmountError):
        await flow.submit("1234")
    assert transaction_gateway.calls == []


async def test_concurrent_submission_is_rejected(transaction_gateway, session_params, payment_receipt):
    """Test a second submit while one is in flight raises and issues no call"""
    transaction_gateway.queue(payment_receipt)
    transaction_gateway.release = asyncio.Event()
    flow = AuthorizationFlow(transaction_gateway, session_params)

    first = asyncio.create_task(flow.submit("1234"))
    await asyncio.sleep(0)
    assert flow.session.state == FlowState.SUBMITTING

    with pytest.raises(SubmissionInProgressError):
        await flow.submit("1234")

    transaction_gateway.release.set()
    assert await first == Success(transaction_id="PAY-000001")
    assert len(transaction_gateway.calls) == 1


async def test_submit_after_success_is_rejected(transaction_gateway, session_params, payment_receipt):
    transaction_gateway.queue(payment_receipt)
    flow = AuthorizationFlow(transaction_gateway, session_params)
    await flow.submit("1234")

    with pytest.raises(FlowCompletedError):
        await flow.submit("1234")


async def test_late_response_after_close_is_discarded(transaction_gateway, session_params):
    """Test a torn-down session ignores a response that arrives later"""
    transaction_gateway.queue(wrong_pin())
    transaction_gateway.release = asyncio.Event()
    flow = AuthorizationFlow(transaction_gateway, session_params)

    pending = asyncio.create_task(flow.submit("1234"))
    await asyncio.sleep(0)
    flow.close()
    transaction_gateway.release.set()

    assert await pending is None
    assert flow.session.attempts_remaining == 7
    assert flow.take_outcome() is None


async def test_unexpected_gateway_failure_releases_submitting(transaction_gateway, session_params):
    """Test an unexpected exception propagates without leaving the flow stuck"""
    transaction_gateway.queue(RuntimeError("boom"))
    flow = AuthorizationFlow(transaction_gateway, session_params)

    with pytest.raises(RuntimeError):
        await flow.submit("1234")

    assert flow.session.state == FlowState.AWAITING_INPUT
    assert flow.session.attempts_remaining == 7


def test_update_pin_signals_auto_submit(transaction_gateway, session_params):
    """Test the buffer accepts up to 4 digits and reports completion"""
    flow = AuthorizationFlow(transaction_gateway, session_params)

    assert flow.update_pin("12") is False
    assert flow.session.pin == "12"
    assert flow.update_pin("12x") is False
    assert flow.session.pin == "12"
    assert flow.update_pin("12345") is False
    assert flow.update_pin("1234") is True
    assert flow.session.pin == "1234"


def test_subscribers_receive_whole_snapshots(transaction_gateway, session_params):
    flow = AuthorizationFlow(transaction_gateway, session_params)
    seen = []

    subscription = flow.subscribe(seen.append)
    flow.update_pin("1")
    subscription.unsubscribe()
    flow.update_pin("12")

    assert [s.pin for s in seen] == ["", "1"]
    assert seen[0] is not seen[1]


def test_session_params_defaults():
    params = SessionParams.from_navigation(amount="12.5", beneficiary_id=" BEN-9 ")

    assert str(params.amount) == "12.5"
    assert params.beneficiary_id == "BEN-9"
    assert params.beneficiary_name == "Unknown"
    assert params.category == "Default"
    assert params.input_error is None


def test_invalid_max_attempts(transaction_gateway, session_params):
    with pytest.raises(ValueError):
        AuthorizationFlow(transaction_gateway, session_params, max_attempts=0)
