"""Pure kiosk state transitions.

Every function takes the current immutable KioskState plus an input and
returns the next state. No camera, clock or ledger is touched here; the
session applies these transitions and performs the side effects they ask
for (a ``Transition.commit`` identity means "check this member in").
"""
from typing import Optional, Sequence, Tuple

from gymkiosk.domain.entities.member import Member
from gymkiosk.domain.value_objects.kiosk import (
    CheckInReceipt,
    DebounceState,
    KioskState,
    KioskStatus,
    Transition,
)
from gymkiosk.domain.value_objects.recognition import MatchResult

NO_SUFFIX_MATCH_MESSAGE = "No member matches those digits."
CLEAR_KEY = "CLR"
DELETE_KEY = "DEL"

_EMPTY_DEBOUNCE = DebounceState()


def register_match(
    debounce: DebounceState,
    match: Optional[MatchResult],
    required_matches: int,
) -> Tuple[DebounceState, Optional[str]]:
    """Feed one frame result into the consecutive-match counter.

    Returns the new counter and, once ``required_matches`` identical
    matches arrived in a row, the identity to commit. The counter is empty
    again after a commit or after any frame without a match.
    """
    if match is None:
        return _EMPTY_DEBOUNCE, None

    if match.identity == debounce.last_identity:
        count = debounce.consecutive_count + 1
    else:
        count = 1

    if count >= required_matches:
        return _EMPTY_DEBOUNCE, match.identity
    return DebounceState(last_identity=match.identity, consecutive_count=count), None


def can_scan(state: KioskState) -> bool:
    """Whether the camera loop may run a detection cycle now."""
    return (
        not state.manual_mode
        and not state.fatal
        and state.status in (KioskStatus.IDLE, KioskStatus.DETECTING)
    )


def begin_detection(state: KioskState) -> KioskState:
    if not can_scan(state):
        return state
    return state.model_copy(update={"status": KioskStatus.DETECTING})


def apply_frame_result(
    state: KioskState,
    match: Optional[MatchResult],
    required_matches: int,
) -> Transition:
    """Apply the outcome of one camera frame.

    ``match`` is None both when no face was found and when the face did not
    match anyone; either way the counter resets silently and the kiosk goes
    back to idle.
    """
    if not can_scan(state):
        return Transition(state)

    debounce, commit = register_match(state.debounce, match, required_matches)
    if match is None:
        return Transition(state.model_copy(update={"status": KioskStatus.IDLE, "debounce": debounce}))
    return Transition(
        state.model_copy(update={"status": KioskStatus.DETECTING, "debounce": debounce}),
        commit,
    )


def check_in_succeeded(state: KioskState, receipt: CheckInReceipt) -> KioskState:
    member = receipt.member
    return state.model_copy(update={
        "status": KioskStatus.SUCCESS,
        "message": f"Welcome, {member.name}! {member.remaining_tickets} ticket(s) left.",
        "receipt": receipt,
        "candidates": (),
        "digits": "",
        "debounce": _EMPTY_DEBOUNCE,
        "fatal": False,
    })


def check_in_failed(state: KioskState, message: str) -> KioskState:
    """Show a recoverable error; the session dismisses it after a delay."""
    return state.model_copy(update={
        "status": KioskStatus.ERROR,
        "message": message,
        "receipt": None,
        "candidates": (),
        "debounce": _EMPTY_DEBOUNCE,
        "fatal": False,
    })


def fatal_error(state: KioskState, message: str) -> KioskState:
    """Show an error that stays until the operator switches mode or resets."""
    return check_in_failed(state, message).model_copy(update={"fatal": True})


def dismiss_error(state: KioskState) -> KioskState:
    if state.status is not KioskStatus.ERROR:
        return state
    return state.model_copy(update={
        "status": KioskStatus.IDLE,
        "message": "",
        "digits": "",
        "fatal": False,
    })


def reset(state: KioskState) -> KioskState:
    """Back to an idle camera-mode kiosk with nothing remembered."""
    return KioskState()


def enter_manual_mode(state: KioskState) -> KioskState:
    return KioskState(manual_mode=True)


def leave_manual_mode(state: KioskState) -> KioskState:
    return KioskState(manual_mode=False)


def press_key(state: KioskState, key: str, suffix_length: int) -> KioskState:
    """Apply one keypad press in manual mode.

    Digits are appended up to ``suffix_length``; ``CLR`` clears the input
    and ``DEL`` removes the last digit. Presses outside an idle manual-mode
    kiosk are ignored.
    """
    if not state.manual_mode or state.status is not KioskStatus.IDLE:
        return state

    if key == CLEAR_KEY:
        digits = ""
    elif key == DELETE_KEY:
        digits = state.digits[:-1]
    elif len(key) == 1 and key.isdigit() and len(state.digits) < suffix_length:
        digits = state.digits + key
    else:
        return state
    return state.model_copy(update={"digits": digits})


def resolve_suffix_matches(state: KioskState, matches: Sequence[Member]) -> Transition:
    """Decide what a completed phone-suffix lookup leads to."""
    if not matches:
        return Transition(check_in_failed(state, NO_SUFFIX_MATCH_MESSAGE))
    if len(matches) == 1:
        return Transition(state, matches[0].id)
    return Transition(state.model_copy(update={
        "status": KioskStatus.SELECTING,
        "candidates": tuple(matches),
        "message": "",
    }))


def select_candidate(state: KioskState, identity: str) -> Transition:
    if state.status is not KioskStatus.SELECTING:
        return Transition(state)
    if identity not in {member.id for member in state.candidates}:
        return Transition(state)
    return Transition(state, identity)
