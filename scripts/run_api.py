import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from ollama_chat.config import ConfigError, load_config


def main() -> None:
    # Fail fast (before uvicorn starts) when required configuration is missing.
    try:
        load_config()
    except ConfigError as e:
        print(f"[api] {e}", file=sys.stderr)
        sys.exit(1)

    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("PORT") or os.environ.get("API_PORT", "5000"))
    uvicorn.run("ollama_chat.api.server:create_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
