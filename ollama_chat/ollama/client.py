from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests


@dataclass
class OllamaError(Exception):
    message: str
    # Upstream HTTP status when the model server answered; None for transport failures.
    status_code: Optional[int] = None

    def __str__(self) -> str:
        return self.message


def _base(base_url: str) -> str:
    if not base_url:
        raise OllamaError("Missing base_url")
    base = base_url.rstrip("/")
    # Accept the full generate endpoint as well as the bare server URL.
    for suffix in ("/api/generate", "/api"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    return base


def _json_object(r: Any) -> Dict[str, Any]:
    """Decode a reply body that must be a JSON object."""
    try:
        data = r.json()
    except ValueError:
        raise OllamaError(f"Invalid JSON from Ollama API: {r.text[:200]}", status_code=502)
    if not isinstance(data, dict):
        raise OllamaError(f"Unexpected reply from Ollama API: {str(data)[:200]}", status_code=502)
    return data


def generate(
    base_url: str,
    model: str,
    prompt: str,
    timeout_seconds: Optional[float] = None,
) -> str:
    """Call Ollama /api/generate (non-streaming) and return the response text."""
    if not model:
        raise OllamaError("Missing model")
    if not prompt:
        raise OllamaError("Missing prompt")

    url = f"{_base(base_url)}/api/generate"
    payload: Dict[str, Any] = {
        "model": model,
        "prompt": prompt,
        "stream": False,
    }

    try:
        r = requests.post(url, json=payload, timeout=timeout_seconds)
    except requests.RequestException as e:
        raise OllamaError(f"Failed to communicate with Ollama API: {e}")

    if not r.ok:
        raise OllamaError(f"Ollama API error: {r.text}", status_code=r.status_code)

    data = _json_object(r)
    text = data.get("response")
    if text is None:
        raise OllamaError(f"No response text from Ollama API: {data}", status_code=502)
    return str(text)


def list_models(base_url: str, timeout_seconds: Optional[float] = None) -> List[str]:
    """Names of the models installed on the Ollama server (/api/tags)."""
    url = f"{_base(base_url)}/api/tags"
    try:
        r = requests.get(url, timeout=timeout_seconds)
    except requests.RequestException as e:
        raise OllamaError(f"Failed to communicate with Ollama API: {e}")

    if not r.ok:
        raise OllamaError(f"Ollama API error: {r.text}", status_code=r.status_code)

    data = _json_object(r)
    models = data.get("models") or []
    if not isinstance(models, list):
        raise OllamaError(f"Unexpected model list from Ollama API: {str(models)[:200]}", status_code=502)
    return [str(m.get("name")) for m in models if isinstance(m, dict) and m.get("name")]
