from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys

from dateutil import parser as dt_parser

from app.config import Config
from app.dashboard.contracts import BackendError
from app.dashboard.remote import DEFAULT_POLL_INTERVAL, RemoteBackend
from app.dashboard.view import DashboardView


HELP_TEXT = "commands: add <url> <title>, rm <number>, logout, quit"


def format_created_at(value: str) -> str:
    if not value:
        return ""
    try:
        parsed = dt_parser.isoparse(value)
    except (ValueError, OverflowError):
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def render(view: DashboardView, out=sys.stdout) -> None:
    email = view.identity.email if view.identity else "signed out"
    print(f"\n== My Bookmarks ({email}) ==", file=out)
    if not view.bookmarks:
        print("No bookmarks yet. Add your first one!", file=out)
    for number, bookmark in enumerate(view.bookmarks, start=1):
        added = format_created_at(bookmark.created_at)
        print(f"{number:>3}. {bookmark.title}  <{bookmark.url}>  {added}", file=out)
    out.flush()


async def handle_command(view: DashboardView, line: str, out=sys.stdout) -> bool:
    """Run one command line; return False when the client should stop."""
    parts = line.strip().split(maxsplit=2)
    if not parts:
        return True
    command = parts[0].lower()

    if command in {"quit", "exit"}:
        return False
    if command == "logout":
        await view.logout()
        return False
    if command == "add":
        if len(parts) < 3:
            print("usage: add <url> <title>", file=out)
            return True
        view.url, view.title = parts[1], parts[2]
        if await view.submit() is None:
            print("bookmark was not added", file=out)
        return True
    if command == "rm":
        if len(parts) < 2 or not parts[1].isdigit():
            print("usage: rm <number>", file=out)
            return True
        position = int(parts[1]) - 1
        if not 0 <= position < len(view.bookmarks):
            print(f"no bookmark numbered {parts[1]}", file=out)
            return True
        await view.delete_bookmark(view.bookmarks[position].id)
        return True

    print(HELP_TEXT, file=out)
    return True


async def run_client(args) -> int:
    signer = RemoteBackend(args.server)
    try:
        token = await signer.sign_in(args.email, args.password)
    except BackendError as exc:
        print(f"Sign in failed: {exc}", file=sys.stderr)
        return 1
    finally:
        await signer.aclose()

    view = DashboardView(
        lambda: RemoteBackend(args.server, token=token, poll_interval=args.poll),
        navigate=lambda path: print(f"Signed out. Visit {args.server}{path} to sign in again."),
        dedupe_inserts=args.dedupe,
    )
    view.on_change(lambda: render(view))
    await view.activate()
    if view.identity is None:
        print("Not signed in.", file=sys.stderr)
        await view.deactivate()
        return 1

    print(HELP_TEXT)
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not await handle_command(view, line):
                break
    finally:
        await view.deactivate()
    return 0


def main() -> None:
    p = argparse.ArgumentParser(prog="smart-bookmarks-client")
    p.add_argument("--server", default="http://127.0.0.1:8072")
    p.add_argument("--email", required=True)
    p.add_argument("--password")
    p.add_argument("--poll", type=float, default=DEFAULT_POLL_INTERVAL)
    p.add_argument(
        "--dedupe",
        action="store_true",
        default=Config.DASHBOARD_DEDUPE_INSERTS,
        help="drop change-feed inserts for bookmarks already listed",
    )
    args = p.parse_args()
    if not args.password:
        args.password = getpass.getpass("Password: ")

    logging.basicConfig(level=Config.LOG_LEVEL)
    sys.exit(asyncio.run(run_client(args)))


if __name__ == "__main__":
    main()
