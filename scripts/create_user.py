"""Create a user directly in the database.

Usage:
  python scripts/create_user.py --username alice --password '...' --role super_admin

NOTE: Intended for local/dev and for creating the first super admin.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from ollama_chat.config import load_config
from ollama_chat.db import init_db, connect
from ollama_chat.auth.crud import create_user
from ollama_chat.schema import ROLES


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--username", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=list(ROLES), default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        u = create_user(conn, username=args.username, password=args.password, role=args.role)

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
