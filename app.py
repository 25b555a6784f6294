from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from typing import Any, Dict, Optional

from authsession.core.config import load_config
from authsession.core.errors import SessionError
from authsession.core.logger import setup_logging
from authsession.core.session.client import SessionClient


def _prompt_credentials(args: argparse.Namespace, *, confirm: bool = False) -> Dict[str, Any]:
    email = args.email or input("Email: ").strip()
    password = getpass.getpass("Password: ")
    form: Dict[str, Any] = {"email": email, "password": password}
    if confirm:
        form["password_confirmation"] = getpass.getpass("Confirm password: ")
        if getattr(args, "name", None):
            form["name"] = args.name
    return form


async def _watch(client: SessionClient, logger: logging.Logger) -> None:
    delay = await client.start()
    if delay is None:
        logger.info("No active session; sign in first.")
        return
    logger.info(f"Session active; next refresh in {delay:.0f}s. Ctrl+C to stop.")
    while client.session.is_logged_in:
        await asyncio.sleep(1.0)
    logger.info("Session ended.")


async def _run(args: argparse.Namespace, client: SessionClient, logger: logging.Logger) -> int:
    ops = client.ops
    try:
        if args.command == "status":
            print(json.dumps(client.status(), indent=2, sort_keys=True))
        elif args.command == "signin":
            await ops.signin(_prompt_credentials(args))
        elif args.command == "signup":
            await ops.signup(_prompt_credentials(args, confirm=True))
        elif args.command == "whoami":
            user = await ops.get_user()
            print(json.dumps(user, indent=2, sort_keys=True))
        elif args.command == "refresh":
            result = await ops.refresh()
            if result is None:
                logger.info("Not signed in.")
            else:
                logger.info(f"Refresh: {result.status}")
        elif args.command == "logout":
            await ops.logout()
        elif args.command == "watch":
            await _watch(client, logger)
        return 0
    except SessionError as e:
        logger.error(f"[{e.code}] {e.user_message}")
        return 1
    finally:
        await client.close()


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Session and token-refresh client")
    ap.add_argument("--config", default=None, help="Path to session.json (default: config/session.json).")
    ap.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Show the persisted session.")
    p_in = sub.add_parser("signin", help="Sign in and persist the session.")
    p_in.add_argument("--email", default=None)
    p_up = sub.add_parser("signup", help="Register and sign in.")
    p_up.add_argument("--email", default=None)
    p_up.add_argument("--name", default=None)
    sub.add_parser("whoami", help="Fetch the current user from the server.")
    sub.add_parser("refresh", help="Refresh the access token now.")
    sub.add_parser("logout", help="Log out and clear the session.")
    sub.add_parser("watch", help="Keep the session alive until interrupted.")
    args = ap.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except SessionError as e:
        print(f"[{e.code}] {e.user_message}", file=sys.stderr)
        return 2
    logger = setup_logging(cfg.logging, verbose=args.verbose)
    client = SessionClient.build(cfg, logger=logger)
    try:
        return asyncio.run(_run(args, client, logger))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
