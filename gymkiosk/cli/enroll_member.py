"""CLI tool for enrolling a member's face from an image file.

Usage:
    python -m gymkiosk.cli.enroll_member <member_id> <image_path>
    python -m gymkiosk.cli.enroll_member --new-member "Kim" --phone 010-1234-5678 --tickets 10 <image_path>
"""
import argparse
import asyncio
import sys
from pathlib import Path

from gymkiosk.core.container import container
from gymkiosk.core.exceptions import KioskError
from gymkiosk.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def enroll(args: argparse.Namespace) -> int:
    """Enroll the face in ``args.image_path`` and report the outcome.

    Returns:
        Process exit code
    """
    image_file = Path(args.image_path)
    if not image_file.exists():
        logger.error("Image file not found", path=args.image_path)
        return 1

    await container.initialize()
    try:
        member_id = args.member_id
        if args.new_member:
            member = await container.ledger.add_member(
                name=args.new_member,
                phone=args.phone or "",
                total_tickets=args.tickets,
            )
            member_id = member.id

        member = await container.enrollment_service.enroll(member_id, image_file.read_bytes())
        logger.info(
            "Enrollment completed",
            member_id=member.id,
            name=member.name,
            remaining_tickets=member.remaining_tickets,
        )
        return 0
    except KioskError as e:
        logger.error("Enrollment failed", error=e.message, details=e.details)
        return 1
    finally:
        await container.cleanup()


def main() -> None:
    """CLI entry point."""
    setup_logging()
    parser = argparse.ArgumentParser(description="Enroll a member's face for kiosk check-in")
    parser.add_argument("member_id", nargs="?", help="Key of an existing member")
    parser.add_argument("image_path", help="Path to a single-face image")
    parser.add_argument("--new-member", metavar="NAME", help="Register a new member with this name first")
    parser.add_argument("--phone", help="Phone number for --new-member")
    parser.add_argument("--tickets", type=int, default=0, help="Initial tickets for --new-member")
    args = parser.parse_args()

    if not args.member_id and not args.new_member:
        parser.error("either member_id or --new-member is required")

    sys.exit(asyncio.run(enroll(args)))


if __name__ == "__main__":
    main()
