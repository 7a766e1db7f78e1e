# status_actions.py
# Status transition tables shared by the admin API and the admin console.
#
# Each resource maps an action name to the states it may be taken from, the
# state it leads to and whether a free-text reason is mandatory.

from typing import Dict, FrozenSet, List, NamedTuple, Optional

from service_errors import InvalidTransition, ReasonRequired

# Marker target for "release": return to whatever state the record held before the hold.
PRIOR_STATE = "__prior__"


class Transition(NamedTuple):
    allowed_from: FrozenSet[str]
    target: str
    reason_required: bool = False


def _t(allowed_from, target, reason_required=False) -> Transition:
    return Transition(frozenset(allowed_from), target, reason_required)


CRYPTO_DEPOSITS = "crypto_deposits"
WIRE_TRANSFERS = "wire_transfers"
ACCOUNT_REQUESTS = "account_requests"
IDENTITY_DOCUMENTS = "identity_documents"
USER_INVESTMENTS = "user_investments"
CHAT_THREADS = "chat_threads"

THREAD_STATUSES = ("open", "pending", "resolved", "closed")

TRANSITIONS: Dict[str, Dict[str, Transition]] = {
    CRYPTO_DEPOSITS: {
        "approve": _t({"pending", "on_hold", "awaiting_confirmations"}, "confirmed"),
        "reject": _t({"pending", "on_hold", "awaiting_confirmations"}, "rejected", True),
        "process": _t({"pending", "on_hold", "awaiting_confirmations"}, "processing"),
        "hold": _t({"pending", "processing"}, "on_hold", True),
        "release": _t({"on_hold"}, PRIOR_STATE),
        "complete": _t({"confirmed", "processing"}, "completed"),
        "fail": _t({"processing"}, "failed", True),
        "reverse": _t({"completed"}, "reversed", True),
    },
    WIRE_TRANSFERS: {
        "approve": _t({"pending"}, "processing"),
        "reject": _t({"pending", "processing", "on_hold"}, "rejected", True),
        "cancel": _t({"pending", "processing", "on_hold"}, "cancelled", True),
        "hold": _t({"pending", "processing"}, "on_hold", True),
        "release": _t({"on_hold"}, PRIOR_STATE),
        "complete": _t({"processing"}, "completed"),
        "fail": _t({"processing"}, "failed", True),
        "reverse": _t({"completed"}, "reversed", True),
    },
    ACCOUNT_REQUESTS: {
        "approve": _t({"pending"}, "approved"),
        "reject": _t({"pending"}, "rejected", True),
    },
    IDENTITY_DOCUMENTS: {
        "verify": _t({"pending"}, "verified"),
        "reject": _t({"pending"}, "rejected", True),
    },
    USER_INVESTMENTS: {
        "activate": _t({"pending"}, "active"),
        "close": _t({"pending", "active"}, "closed"),
    },
    # Support threads move freely between their statuses.
    CHAT_THREADS: {status: _t(THREAD_STATUSES, status) for status in THREAD_STATUSES},
}

# No actions are offered once a record reaches one of these.
TERMINAL_STATES: Dict[str, FrozenSet[str]] = {
    CRYPTO_DEPOSITS: frozenset({"rejected", "failed", "reversed"}),
    WIRE_TRANSFERS: frozenset({"rejected", "cancelled", "failed", "reversed"}),
    ACCOUNT_REQUESTS: frozenset({"approved", "rejected"}),
    IDENTITY_DOCUMENTS: frozenset({"verified", "rejected"}),
    USER_INVESTMENTS: frozenset({"closed"}),
    CHAT_THREADS: frozenset(),
}


def get_transition(resource: str, action: str) -> Transition:
    try:
        return TRANSITIONS[resource][action]
    except KeyError:
        raise InvalidTransition(f"Unknown action '{action}' for {resource}") from None


def check_reason(resource: str, action: str, reason: Optional[str]) -> None:
    """Raise ReasonRequired when the action needs a reason and none was given."""
    if get_transition(resource, action).reason_required and not (reason or "").strip():
        raise ReasonRequired(action)


def resolve_transition(
    resource: str,
    action: str,
    current_status: str,
    reason: Optional[str] = None,
    prior_status: Optional[str] = None,
) -> str:
    """
    Validate an action against a record's current status and return the new status.

    Raises ReasonRequired when a mandatory reason is blank and InvalidTransition
    when the action is unknown or not allowed from the current status.
    """
    transition = get_transition(resource, action)
    check_reason(resource, action, reason)

    if current_status not in transition.allowed_from:
        raise InvalidTransition(
            f"Cannot {action} {resource.replace('_', ' ')} with status '{current_status}'"
        )

    if transition.target == PRIOR_STATE:
        return prior_status or "pending"
    return transition.target


def available_actions(resource: str, status: Optional[str]) -> List[str]:
    if status in TERMINAL_STATES.get(resource, frozenset()):
        return []
    return [
        action for action, transition in TRANSITIONS.get(resource, {}).items()
        if status in transition.allowed_from
    ]
