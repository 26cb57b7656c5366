"""Tests for the pure kiosk state transitions."""
from datetime import datetime, timezone

from gymkiosk.domain.entities.member import AttendanceRecord, Member
from gymkiosk.domain.value_objects.kiosk import CheckInReceipt, DebounceState, KioskState, KioskStatus
from gymkiosk.domain.value_objects.recognition import MatchResult
from gymkiosk.services.kiosk import state_machine as sm


def match(identity: str) -> MatchResult:
    return MatchResult(identity=identity, distance=0.1, confidence=0.8)


def receipt(member_id: str = "A", remaining: int = 3) -> CheckInReceipt:
    member = Member(id=member_id, name="Kim", remaining_tickets=remaining)
    record = AttendanceRecord(
        id="r1", member_id=member_id, member_name="Kim", timestamp=datetime.now(timezone.utc)
    )
    return CheckInReceipt(member=member, record=record)


class TestRegisterMatch:
    """Consecutive-match counter."""

    def test_two_identical_matches_commit(self):
        """Should commit on the second consecutive match of the same identity."""
        debounce, commit = sm.register_match(DebounceState(), match("A"), 2)
        assert commit is None
        assert debounce == DebounceState(last_identity="A", consecutive_count=1)

        debounce, commit = sm.register_match(debounce, match("A"), 2)
        assert commit == "A"
        assert debounce == DebounceState()

    def test_different_identity_restarts_count(self):
        """Should restart the count at 1 for a different identity."""
        debounce, _ = sm.register_match(DebounceState(), match("A"), 2)
        debounce, commit = sm.register_match(debounce, match("B"), 2)
        assert commit is None
        assert debounce == DebounceState(last_identity="B", consecutive_count=1)

    def test_missing_match_resets(self):
        """Should reset the counter when a frame has no match."""
        debounce, _ = sm.register_match(DebounceState(), match("A"), 2)
        debounce, commit = sm.register_match(debounce, None, 2)
        assert commit is None
        assert debounce == DebounceState()

        # A,None,A must not commit
        debounce, commit = sm.register_match(debounce, match("A"), 2)
        assert commit is None

    def test_single_frame_requirement(self):
        """Should commit immediately when only one match is required."""
        _, commit = sm.register_match(DebounceState(), match("A"), 1)
        assert commit == "A"


class TestFrameTransitions:
    """Camera-driven transitions."""

    def test_detection_then_commit(self):
        """Should stay detecting after one match and commit after two."""
        state = sm.begin_detection(KioskState())
        assert state.status is KioskStatus.DETECTING

        first = sm.apply_frame_result(state, match("A"), 2)
        assert first.commit is None
        assert first.state.status is KioskStatus.DETECTING

        second = sm.apply_frame_result(sm.begin_detection(first.state), match("A"), 2)
        assert second.commit == "A"
        assert second.state.debounce == DebounceState()

    def test_no_face_returns_to_idle(self):
        """Should silently go back to idle on a frame without a match."""
        state = sm.begin_detection(KioskState())
        transition = sm.apply_frame_result(state, None, 2)
        assert transition.state.status is KioskStatus.IDLE
        assert transition.state.message == ""
        assert transition.commit is None

    def test_no_scanning_in_manual_mode_or_terminal_states(self):
        """Should not start detection in manual mode, on success or on a fatal error."""
        manual = sm.enter_manual_mode(KioskState())
        assert sm.begin_detection(manual) is manual
        assert sm.apply_frame_result(manual, match("A"), 1).commit is None

        success = sm.check_in_succeeded(KioskState(), receipt())
        assert not sm.can_scan(success)

        fatal = sm.fatal_error(KioskState(), "Camera unavailable")
        assert not sm.can_scan(fatal)


class TestOutcomes:
    """Success, error and reset states."""

    def test_success_shows_remaining_credit(self):
        """Should show the member and remaining tickets on success."""
        state = sm.check_in_succeeded(KioskState(), receipt(remaining=3))
        assert state.status is KioskStatus.SUCCESS
        assert state.receipt.updated_credit == 3
        assert "Kim" in state.message
        assert "3" in state.message

    def test_error_message_verbatim(self):
        """Should keep the ledger's error message unchanged."""
        state = sm.check_in_failed(KioskState(), "insufficient credit")
        assert state.status is KioskStatus.ERROR
        assert state.message == "insufficient credit"
        assert not state.fatal

    def test_dismiss_keeps_mode_and_clears_digits(self):
        """Should go back to idle in the same mode with empty input."""
        state = sm.enter_manual_mode(KioskState()).model_copy(update={"digits": "1234"})
        state = sm.dismiss_error(sm.check_in_failed(state, sm.NO_SUFFIX_MATCH_MESSAGE))
        assert state.status is KioskStatus.IDLE
        assert state.manual_mode
        assert state.digits == ""

    def test_fatal_error_is_flagged(self):
        """Should mark fatal errors so they are not auto-dismissed."""
        state = sm.fatal_error(KioskState(), "Camera unavailable")
        assert state.status is KioskStatus.ERROR
        assert state.fatal

    def test_reset_and_mode_toggle_clear_debounce(self):
        """Should forget the debounce counter on reset and mode switches."""
        dirty = KioskState(debounce=DebounceState(last_identity="A", consecutive_count=1))
        assert sm.reset(dirty).debounce == DebounceState()
        assert sm.enter_manual_mode(dirty).debounce == DebounceState()
        assert sm.leave_manual_mode(sm.enter_manual_mode(dirty)) == KioskState()


class TestKeypad:
    """Manual phone-suffix entry."""

    def test_digits_clear_and_delete(self):
        """Should append digits up to the limit and honour CLR and DEL."""
        state = sm.enter_manual_mode(KioskState())
        for key in "12345":
            state = sm.press_key(state, key, 4)
        assert state.digits == "1234"

        state = sm.press_key(state, sm.DELETE_KEY, 4)
        assert state.digits == "123"
        state = sm.press_key(state, "x", 4)
        assert state.digits == "123"
        state = sm.press_key(state, sm.CLEAR_KEY, 4)
        assert state.digits == ""

    def test_keys_ignored_in_camera_mode(self):
        """Should ignore keypad presses outside manual mode."""
        state = KioskState()
        assert sm.press_key(state, "1", 4) is state

    def test_suffix_resolution(self):
        """Should error on no match, commit on one, select on many."""
        state = sm.enter_manual_mode(KioskState()).model_copy(update={"digits": "5678"})
        kim = Member(id="1", name="Kim", phone="010-1234-5678")
        lee = Member(id="2", name="Lee", phone="010-9999-5678")

        none = sm.resolve_suffix_matches(state, [])
        assert none.state.status is KioskStatus.ERROR
        assert none.state.message == sm.NO_SUFFIX_MATCH_MESSAGE
        assert none.commit is None

        one = sm.resolve_suffix_matches(state, [kim])
        assert one.commit == "1"

        many = sm.resolve_suffix_matches(state, [kim, lee])
        assert many.commit is None
        assert many.state.status is KioskStatus.SELECTING
        assert [m.id for m in many.state.candidates] == ["1", "2"]

        assert sm.select_candidate(many.state, "2").commit == "2"
        assert sm.select_candidate(many.state, "99").commit is None
