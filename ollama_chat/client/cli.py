"""Command-line front end for the chat backend.

Usage:
  python -m ollama_chat.client.cli login --username alice --password '...'
  python -m ollama_chat.client.cli chat "Why is the sky blue?" --model llama2
  python -m ollama_chat.client.cli history
  python -m ollama_chat.client.cli users            # admin / super_admin
  python -m ollama_chat.client.cli set-role 3 admin # super_admin

Environment:
  OLLAMA_CHAT_API_URL   backend base URL (default: http://localhost:5000/api)
  OLLAMA_CHAT_SESSION   session file (default: ~/.ollama_chat/session.json)
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ollama_chat.schema import ROLES

from .api import ApiClient, ApiError
from .session import FileSessionStore, SessionContext


DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_SESSION_PATH = Path.home() / ".ollama_chat" / "session.json"


class GuardError(Exception):
    """Command refused locally before contacting the server."""


def _require_login(ctx: SessionContext) -> None:
    if not ctx.is_authenticated:
        raise GuardError("Not logged in. Run `login` or `register` first.")


def _require_admin(ctx: SessionContext) -> None:
    _require_login(ctx)
    if not (ctx.session and ctx.session.is_admin):
        raise GuardError("Access Denied: You do not have administrative privileges.")


def _require_super_admin(ctx: SessionContext, action: str) -> None:
    _require_admin(ctx)
    if not (ctx.session and ctx.session.is_super_admin):
        raise GuardError(f"Only Super Admins can {action}.")


def _password(args: argparse.Namespace, attr: str, prompt: str) -> str:
    value = getattr(args, attr, None)
    return value if value else getpass.getpass(prompt)


def cmd_register(api: ApiClient, args: argparse.Namespace) -> None:
    data = api.register(args.username, _password(args, "password", "Password: "))
    print(f"Registered and logged in as {data['user']['username']} ({data['user']['role']})")


def cmd_login(api: ApiClient, args: argparse.Namespace) -> None:
    data = api.login(args.username, _password(args, "password", "Password: "))
    print(f"Logged in as {data['user']['username']} ({data['user']['role']})")


def cmd_logout(api: ApiClient, args: argparse.Namespace) -> None:
    api.context.logout()
    print("Logged out.")


def cmd_whoami(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    u = api.me()
    print(f"{u['username']} (id={u['id']}, role={u['role']}, created_at={u.get('created_at')})")


def cmd_password(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    current = _password(args, "current", "Current password: ")
    new = _password(args, "new", "New password: ")
    if not args.new:
        confirm = getpass.getpass("Confirm new password: ")
        if confirm != new:
            raise GuardError("New passwords do not match!")
    print(api.change_password(current, new)["message"])


def cmd_chat(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    prompt = " ".join(args.prompt).strip()
    if not prompt:
        raise GuardError("Prompt is required")
    print(api.send_message(prompt, model=args.model))


def cmd_history(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    messages = api.history()
    if not messages:
        print("(no messages)")
        return
    for m in messages:
        print(f"[{m['timestamp']}] {m['sender']}: {m['text']}")


def cmd_clear(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    print(api.clear_history()["message"])


def cmd_models(api: ApiClient, args: argparse.Namespace) -> None:
    _require_login(api.context)
    models = api.models()
    if not models:
        print("No Ollama models found. Please ensure Ollama is running and models are downloaded.")
        return
    for name in models:
        print(name)


def cmd_users(api: ApiClient, args: argparse.Namespace) -> None:
    _require_admin(api.context)
    for u in api.list_users():
        print(f"{u['id']}\t{u['username']}\t{u['role']}\t{u.get('created_at') or ''}")


def cmd_set_role(api: ApiClient, args: argparse.Namespace) -> None:
    _require_super_admin(api.context, "change roles")
    data = api.set_role(args.user_id, args.role)
    print(f"{data['message']}: {data['user']} -> {data['newRole']}")


def cmd_delete_user(api: ApiClient, args: argparse.Namespace) -> None:
    _require_super_admin(api.context, "delete users")
    user = api.context.user
    if user is not None and int(user.id) == int(args.user_id):
        raise GuardError("You cannot delete your own account.")
    data = api.delete_user(args.user_id)
    print(f"{data['message']}: {data['user']}")


COMMANDS: Dict[str, Callable[[ApiClient, argparse.Namespace], None]] = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "password": cmd_password,
    "chat": cmd_chat,
    "history": cmd_history,
    "clear": cmd_clear,
    "models": cmd_models,
    "users": cmd_users,
    "set-role": cmd_set_role,
    "delete-user": cmd_delete_user,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="ollama-chat", description="Ollama Chat command-line client")
    ap.add_argument("--api-url", default=os.environ.get("OLLAMA_CHAT_API_URL", DEFAULT_API_URL))
    ap.add_argument("--session-file", default=os.environ.get("OLLAMA_CHAT_SESSION", str(DEFAULT_SESSION_PATH)))
    sub = ap.add_subparsers(dest="command", required=True)

    for name in ("register", "login"):
        p = sub.add_parser(name)
        p.add_argument("--username", required=True)
        p.add_argument("--password", help="prompted for when omitted")

    sub.add_parser("logout")
    sub.add_parser("whoami")

    p = sub.add_parser("password")
    p.add_argument("--current")
    p.add_argument("--new")

    p = sub.add_parser("chat")
    p.add_argument("prompt", nargs="+")
    p.add_argument("--model")

    sub.add_parser("history")
    sub.add_parser("clear")
    sub.add_parser("models")
    sub.add_parser("users")

    p = sub.add_parser("set-role")
    p.add_argument("user_id", type=int)
    p.add_argument("role", choices=list(ROLES))

    p = sub.add_parser("delete-user")
    p.add_argument("user_id", type=int)

    return ap


def main(argv: Optional[List[str]] = None, api: Optional[ApiClient] = None) -> int:
    args = build_parser().parse_args(argv)
    if api is None:
        ctx = SessionContext(FileSessionStore(args.session_file))
        api = ApiClient(args.api_url, ctx)

    try:
        COMMANDS[args.command](api, args)
    except GuardError as e:
        print(str(e), file=sys.stderr)
        return 2
    except ApiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
