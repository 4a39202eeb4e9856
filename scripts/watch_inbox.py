#!/usr/bin/env python3
"""Watch a user's SmartCare inbox from the terminal.

Loads the conversation and notification snapshot for one user, prints it,
then prints every change pushed over the live update channels until
interrupted.

Usage
-----
Set environment variables and run::

    export SMARTCARE_BASE_URL="http://localhost:5056/api"
    export SMARTCARE_API_TOKEN="..."            # optional
    python scripts/watch_inbox.py USER_ID

Options::

    --once               Print the snapshot and exit
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from pysmartcare import SmartCareClient, SmartCareConfig, SyncSession  # noqa: E402
from pysmartcare.state.events import AppendNew, Transition  # noqa: E402


def _print_snapshot(session: SyncSession) -> None:
    print(f"== {session.identity}: {session.unread_messages} unread messages ==")
    for conversation in session.conversations():
        others = ", ".join(
            conversation.display_name_for(p) for p in conversation.other_participants(session.identity)
        )
        when = conversation.last_message_time.isoformat() if conversation.last_message_time else "-"
        print(f"  [{conversation.unread_count}] {others or conversation.id}  {when}")

    print(f"== {session.unread_notifications} unread notifications ==")
    for notification in session.notifications():
        marker = " " if notification.read else "*"
        print(f"  {marker} {notification.kind.value:<8} {notification.title}  {notification.created_at.isoformat()}")


def _print_change(session: SyncSession, transition: Transition) -> None:
    if isinstance(transition, AppendNew):
        entity = transition.entity
        print(f"+ {type(entity).__name__} {entity.id} ({transition.source.value})")
    else:
        print(f"~ {transition.kind} ({transition.source.value})")
    print(f"  unread: {session.unread_messages} messages, {session.unread_notifications} notifications")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch a SmartCare inbox")
    parser.add_argument("user_id", help="Identity to synchronize")
    parser.add_argument("--once", action="store_true", help="Print the snapshot and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = SmartCareConfig.from_env(live_updates_enabled=not args.once)
    async with SmartCareClient(config) as client:
        session = await client.open_session(args.user_id)
        _print_snapshot(session)
        if args.once:
            return

        session.add_listener(lambda transition: _print_change(session, transition))
        await asyncio.Event().wait()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
