"""Live kiosk session: camera recognition loop plus keypad fallback."""
import asyncio
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from gymkiosk.core.config import settings
from gymkiosk.core.exceptions import CameraUnavailableError, CheckInError, ModelLoadError
from gymkiosk.core.logging import get_logger
from gymkiosk.domain.interfaces.capture.frame_source import FrameSource
from gymkiosk.domain.interfaces.ledger.member_ledger import MemberLedger
from gymkiosk.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from gymkiosk.domain.value_objects.kiosk import DebounceState, KioskState, KioskStatus, Transition
from gymkiosk.domain.value_objects.recognition import MatchResult
from gymkiosk.services.gallery import build_gallery
from gymkiosk.services.identity_matching import match_identity
from gymkiosk.services.kiosk import state_machine
from gymkiosk.services.phone_lookup import match_by_suffix

logger = get_logger(__name__)

T = TypeVar('T', bound='KioskSession')
StateListener = Callable[[KioskState], None]

CAMERA_UNAVAILABLE_MESSAGE = "Camera unavailable. Please use phone number entry."
MODEL_UNAVAILABLE_MESSAGE = "Face recognition unavailable. Please use phone number entry."
CHECK_IN_FAILED_MESSAGE = "Check-in failed. Please try again."


class KioskSession:
    """Drives one kiosk: periodic camera scans, debounce, check-in and keypad.

    The camera loop is a cancellable asyncio task. Each cycle reads a frame,
    extracts an embedding, matches it against a gallery rebuilt from the
    ledger, and feeds the result through the pure state machine. A scan
    never starts while another is in flight, and the pause between scans
    starts only after the previous scan finished.

    Switching to manual mode, stopping the session or hitting a fatal error
    cancels the loop and pending timers and releases the camera.

    Example:
        ```python
        async with KioskSession(extractor, ledger, camera) as session:
            session.subscribe(render)
            await session.set_manual_mode(True)
            for key in "5678":
                await session.press_key(key)
        ```
    """

    def __init__(
        self,
        extractor: EmbeddingExtractor,
        ledger: MemberLedger,
        frame_source: FrameSource,
        threshold: Optional[float] = None,
        required_matches: Optional[int] = None,
        scan_interval: Optional[float] = None,
        success_display_seconds: Optional[float] = None,
        error_display_seconds: Optional[float] = None,
        suffix_length: Optional[int] = None,
        strict_embeddings: Optional[bool] = None,
        auto_scan: bool = True,
    ) -> None:
        """Initialize the session; nothing is acquired until ``start``.

        Args:
            extractor: Embedding extractor for camera frames
            ledger: Member ledger providing the gallery and check-ins
            frame_source: Camera feed owned by this session
            auto_scan: Run the periodic camera loop; when false the caller
                drives scans with ``tick``
        """
        self._extractor = extractor
        self._ledger = ledger
        self._frame_source = frame_source
        self.threshold = settings.MATCH_THRESHOLD if threshold is None else threshold
        self.required_matches = required_matches or settings.REQUIRED_MATCHES
        self.scan_interval = settings.SCAN_INTERVAL_SECONDS if scan_interval is None else scan_interval
        self.success_display_seconds = (
            settings.SUCCESS_DISPLAY_SECONDS if success_display_seconds is None else success_display_seconds
        )
        self.error_display_seconds = (
            settings.ERROR_DISPLAY_SECONDS if error_display_seconds is None else error_display_seconds
        )
        self.suffix_length = suffix_length or settings.PHONE_SUFFIX_LENGTH
        self.strict_embeddings = strict_embeddings
        self.auto_scan = auto_scan

        self._state = KioskState()
        self._listeners: List[StateListener] = []
        self._running = False
        self._tick_in_flight = False
        self._scan_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._camera_lock = asyncio.Lock()

    @property
    def state(self) -> KioskState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_scanning(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback for every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: KioskState) -> None:
        previous = self._state
        self._state = state
        if state.status is not previous.status:
            logger.debug("Kiosk state changed", previous=previous.status.value, current=state.status.value)
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("State listener failed", error=str(e), exc_info=True)

    async def __aenter__(self: T) -> T:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Optional[type], exc_val: Optional[Exception],
                        exc_tb: Optional[Any]) -> None:
        if exc_type:
            logger.error("Kiosk session exited with error", error=str(exc_val))
        await self.stop()

    async def start(self) -> None:
        """Start the session, acquiring the camera unless in manual mode."""
        if self._running:
            return
        self._running = True
        logger.info("Starting kiosk session", manual_mode=self._state.manual_mode)
        if not self._state.manual_mode:
            await self._start_camera()

    async def stop(self) -> None:
        """Stop the loop, cancel timers and release the camera."""
        self._running = False
        await self._cancel_timer()
        await self._stop_camera()
        logger.info("Kiosk session stopped")

    def _wants_camera(self) -> bool:
        return self._running and not self._state.manual_mode

    async def _start_camera(self) -> None:
        async with self._camera_lock:
            if self.is_scanning or not self._wants_camera():
                return
            try:
                await self._frame_source.open()
            except CameraUnavailableError as e:
                logger.error("Camera unavailable", error=e.message, details=e.details)
                await self._frame_source.close()
                self._set_state(state_machine.fatal_error(self._state, CAMERA_UNAVAILABLE_MESSAGE))
                return

            # The session may have stopped or switched to manual mode during open
            if not self._wants_camera():
                logger.info("Camera no longer needed after open")
                await self._frame_source.close()
                return

            if self.auto_scan:
                self._scan_task = asyncio.create_task(self._scan_loop())

    async def _stop_camera(self) -> None:
        async with self._camera_lock:
            task, self._scan_task = self._scan_task, None
            await _cancel(task)
            await self._frame_source.close()

    async def _scan_loop(self) -> None:
        try:
            while True:
                await self.tick()
                if self._state.fatal:
                    logger.warning("Camera loop halted", message=self._state.message)
                    break
                await asyncio.sleep(self.scan_interval)
        finally:
            await self._frame_source.close()

    async def tick(self) -> KioskState:
        """Run one detection cycle if the kiosk is ready for it.

        Does nothing while another cycle is in flight, in manual mode, or
        while a result or fatal error is on screen. Unexpected failures are
        logged and the kiosk goes back to idle.
        """
        if self._tick_in_flight or not state_machine.can_scan(self._state):
            return self._state
        if not self._frame_source.is_open:
            return self._state

        self._tick_in_flight = True
        try:
            self._set_state(state_machine.begin_detection(self._state))
            match = await self._scan_frame()
            transition = state_machine.apply_frame_result(self._state, match, self.required_matches)
            await self._apply(transition)
        except ModelLoadError as e:
            logger.error("Embedding model unavailable", error=e.message, details=e.details)
            self._set_state(state_machine.fatal_error(self._state, MODEL_UNAVAILABLE_MESSAGE))
            await self._frame_source.close()
        except CameraUnavailableError as e:
            logger.error("Camera lost", error=e.message)
            self._set_state(state_machine.fatal_error(self._state, CAMERA_UNAVAILABLE_MESSAGE))
            await self._frame_source.close()
        except Exception as e:
            logger.error("Detection cycle failed", error=str(e), exc_info=True)
            if self._state.status is KioskStatus.DETECTING:
                self._set_state(self._state.model_copy(update={
                    "status": KioskStatus.IDLE,
                    "debounce": DebounceState(),
                }))
        finally:
            self._tick_in_flight = False
        return self._state

    async def _scan_frame(self) -> Optional[MatchResult]:
        frame = await self._frame_source.read()
        embedding = await self._extractor.extract(frame)
        if embedding is None:
            return None

        gallery = build_gallery(await self._ledger.list_members())
        match = match_identity(embedding, gallery, self.threshold, self.strict_embeddings)
        if match is not None:
            logger.debug(
                "Frame matched",
                identity=match.identity,
                distance=round(match.distance, 4),
                confidence=round(match.confidence, 4),
            )
        return match

    async def _apply(self, transition: Transition) -> None:
        self._set_state(transition.state)
        if transition.commit is not None:
            await self._commit(transition.commit)
        elif transition.state.status is KioskStatus.ERROR and not transition.state.fatal:
            self._schedule(self.error_display_seconds, self._dismiss_error)

    async def _commit(self, identity: str) -> None:
        """Check a member in through the ledger and show the outcome."""
        try:
            receipt = await self._ledger.commit_check_in(identity)
        except CheckInError as e:
            logger.warning("Check-in rejected", identity=identity, reason=e.message)
            self._set_state(state_machine.check_in_failed(self._state, e.message))
            self._schedule(self.error_display_seconds, self._dismiss_error)
            return

        logger.info(
            "Check-in committed",
            identity=identity,
            remaining=receipt.updated_credit,
            record_id=receipt.record.id,
        )
        self._set_state(state_machine.check_in_succeeded(self._state, receipt))
        self._schedule(self.success_display_seconds, self.reset)

    async def set_manual_mode(self, enabled: bool) -> None:
        """Switch between camera recognition and keypad entry."""
        if enabled == self._state.manual_mode and not self._state.fatal:
            return
        await self._cancel_timer()
        if enabled:
            await self._stop_camera()
            self._set_state(state_machine.enter_manual_mode(self._state))
            logger.info("Manual entry mode enabled")
        else:
            self._set_state(state_machine.leave_manual_mode(self._state))
            logger.info("Camera recognition mode enabled")
            if self._running:
                await self._start_camera()

    async def press_key(self, key: str) -> KioskState:
        """Apply a keypad press; the lookup runs when the last digit arrives."""
        previous = self._state
        state = state_machine.press_key(previous, key, self.suffix_length)
        self._set_state(state)

        completed = len(state.digits) == self.suffix_length and len(previous.digits) < self.suffix_length
        if completed:
            await self._guarded(self._lookup_suffix(state.digits))
        return self._state

    async def _lookup_suffix(self, digits: str) -> None:
        matches = match_by_suffix(digits, await self._ledger.list_members())
        logger.info("Phone suffix lookup", matches=len(matches))
        await self._apply(state_machine.resolve_suffix_matches(self._state, matches))

    async def select_candidate(self, identity: str) -> KioskState:
        """Resolve a multi-match selection by checking the chosen member in."""
        await self._guarded(self._apply(state_machine.select_candidate(self._state, identity)))
        return self._state

    async def cancel_selection(self) -> None:
        await self.reset()

    async def _guarded(self, operation: Awaitable[None]) -> None:
        """Run a keypad-side operation, turning unexpected failures into a timed error."""
        try:
            await operation
        except Exception as e:
            logger.error("Manual check-in failed", error=str(e), exc_info=True)
            self._set_state(state_machine.check_in_failed(self._state, CHECK_IN_FAILED_MESSAGE))
            self._schedule(self.error_display_seconds, self._dismiss_error)

    async def reset(self) -> None:
        """Return to an idle camera-mode kiosk, restarting the camera if needed."""
        await self._cancel_timer()
        self._set_state(state_machine.reset(self._state))
        if self._running:
            await self._start_camera()

    async def _dismiss_error(self) -> None:
        self._set_state(state_machine.dismiss_error(self._state))

    def _schedule(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        previous = self._timer_task
        if previous is not None and previous is not asyncio.current_task() and not previous.done():
            previous.cancel()
        self._timer_task = asyncio.create_task(self._run_timer(delay, callback))

    async def _run_timer(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        # The task stays tracked while the callback runs so a mode switch or
        # stop can still cancel it
        try:
            await asyncio.sleep(delay)
            await callback()
        except Exception as e:
            logger.error("Kiosk timer callback failed", error=str(e), exc_info=True)
        finally:
            if self._timer_task is asyncio.current_task():
                self._timer_task = None

    async def _cancel_timer(self) -> None:
        task = self._timer_task
        # A timer callback never cancels the task it runs in
        if task is None or task is asyncio.current_task():
            return
        self._timer_task = None
        await _cancel(task)


async def _cancel(task: Optional[asyncio.Task]) -> None:
    """Cancel a task and wait for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
