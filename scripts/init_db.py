import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from ollama_chat.config import load_config
from ollama_chat.db import init_db


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)
    print("DB initialized.")


if __name__ == "__main__":
    main()
