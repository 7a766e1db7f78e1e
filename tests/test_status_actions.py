import pytest

from service_errors import InvalidTransition, ReasonRequired
from status_actions import (
    ACCOUNT_REQUESTS, CHAT_THREADS, CRYPTO_DEPOSITS, IDENTITY_DOCUMENTS, TRANSITIONS, USER_INVESTMENTS,
    WIRE_TRANSFERS, available_actions, check_reason, resolve_transition,
)


@pytest.mark.parametrize(
    "resource, action, current, target",
    [
        (CRYPTO_DEPOSITS, "approve", "pending", "confirmed"),
        (CRYPTO_DEPOSITS, "complete", "confirmed", "completed"),
        (WIRE_TRANSFERS, "approve", "pending", "processing"),
        (WIRE_TRANSFERS, "complete", "processing", "completed"),
        (ACCOUNT_REQUESTS, "approve", "pending", "approved"),
        (IDENTITY_DOCUMENTS, "verify", "pending", "verified"),
        (USER_INVESTMENTS, "close", "active", "closed"),
        (CHAT_THREADS, "resolved", "open", "resolved"),
    ],
)
def test_allowed_transitions(resource, action, current, target):
    assert resolve_transition(resource, action, current) == target


def test_reason_required_for_negative_actions():
    with pytest.raises(ReasonRequired, match="A reason is required to reject"):
        resolve_transition(CRYPTO_DEPOSITS, "reject", "pending", reason="   ")
    assert resolve_transition(CRYPTO_DEPOSITS, "reject", "pending", reason="Bad wallet") == "rejected"


def test_every_reason_required_action_rejects_blank_reason():
    for resource, actions in TRANSITIONS.items():
        for action, transition in actions.items():
            if transition.reason_required:
                with pytest.raises(ReasonRequired):
                    check_reason(resource, action, None)


def test_disallowed_source_state():
    with pytest.raises(InvalidTransition, match="Cannot complete wire transfers with status 'pending'"):
        resolve_transition(WIRE_TRANSFERS, "complete", "pending")


def test_unknown_action():
    with pytest.raises(InvalidTransition, match="Unknown action"):
        resolve_transition(ACCOUNT_REQUESTS, "explode", "pending")


def test_release_returns_to_prior_state():
    assert resolve_transition(WIRE_TRANSFERS, "release", "on_hold", prior_status="processing") == "processing"
    assert resolve_transition(CRYPTO_DEPOSITS, "release", "on_hold") == "pending"


def test_available_actions():
    assert set(available_actions(WIRE_TRANSFERS, "pending")) == {"approve", "reject", "cancel", "hold"}
    assert available_actions(WIRE_TRANSFERS, "cancelled") == []
    assert available_actions(ACCOUNT_REQUESTS, "approved") == []
    assert "reverse" in available_actions(CRYPTO_DEPOSITS, "completed")
    assert len(available_actions(CHAT_THREADS, "closed")) == 4


def test_reject_and_reverse_sources():
    assert "reject" in available_actions(WIRE_TRANSFERS, "processing")
    assert "reject" in available_actions(WIRE_TRANSFERS, "on_hold")
    assert "reject" not in available_actions(WIRE_TRANSFERS, "completed")
    assert "reverse" not in available_actions(CRYPTO_DEPOSITS, "confirmed")
    with pytest.raises(InvalidTransition):
        resolve_transition(CRYPTO_DEPOSITS, "reverse", "confirmed", reason="Chargeback")
