"""CLI tool running the check-in kiosk on a local webcam.

State changes are written to the log. In manual mode, keypad input is read
from stdin: digits, ``CLR``, ``DEL``, ``pick <member_id>`` during a
selection, ``cam`` to go back to face recognition, ``manual`` to switch to
the keypad, and ``quit``.

Usage:
    python -m gymkiosk.cli.run_kiosk [--camera 0] [--manual]
"""
import argparse
import asyncio

from gymkiosk.core.container import container
from gymkiosk.core.logging import get_logger, setup_logging
from gymkiosk.domain.value_objects.kiosk import KioskState
from gymkiosk.infrastructure.camera import OpenCVCamera
from gymkiosk.services.kiosk.session import KioskSession

logger = get_logger(__name__)


def log_state(state: KioskState) -> None:
    logger.info(
        "Kiosk state",
        status=state.status.value,
        manual_mode=state.manual_mode,
        digits=state.digits,
        message=state.message,
        candidates=[member.id for member in state.candidates],
    )


async def handle_command(session: KioskSession, command: str) -> bool:
    """Apply one stdin command. Returns False when the kiosk should exit."""
    if command == "quit":
        return False
    if command == "manual":
        await session.set_manual_mode(True)
    elif command == "cam":
        await session.set_manual_mode(False)
    elif command == "cancel":
        await session.cancel_selection()
    elif command.startswith("pick "):
        await session.select_candidate(command.split(maxsplit=1)[1])
    elif command in ("CLR", "DEL"):
        await session.press_key(command)
    else:
        for key in command:
            await session.press_key(key)
    return True


async def run(args: argparse.Namespace) -> None:
    await container.initialize()
    session = container.create_kiosk_session(OpenCVCamera(args.camera))
    session.subscribe(log_state)

    try:
        async with session:
            if args.manual:
                await session.set_manual_mode(True)
            while True:
                line = await asyncio.to_thread(input)
                if not await handle_command(session, line.strip()):
                    break
    except (EOFError, KeyboardInterrupt):
        logger.info("Kiosk interrupted")
    finally:
        await container.cleanup()


def main() -> None:
    """CLI entry point."""
    setup_logging()
    parser = argparse.ArgumentParser(description="Run the gym check-in kiosk")
    parser.add_argument("--camera", type=int, default=None, help="OpenCV camera index")
    parser.add_argument("--manual", action="store_true", help="Start in keypad entry mode")
    args = parser.parse_args()

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
