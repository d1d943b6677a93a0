from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ollama_chat.auth.deps import TOKEN_HEADER

from .session import SessionContext


@dataclass
class ApiError(Exception):
    status_code: int
    message: str

    def __str__(self) -> str:
        return f"{self.message} (HTTP {self.status_code})"


class ApiClient:
    """Thin JSON client for the backend. Sends the session token in `x-auth-token`."""

    def __init__(
        self,
        base_url: str,
        context: SessionContext,
        timeout_seconds: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.context = context
        self.timeout_seconds = timeout_seconds
        self.http = http or requests.Session()

    def request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.context.token:
            headers[TOKEN_HEADER] = self.context.token

        r = self.http.request(
            method,
            f"{self.base_url}{endpoint}",
            json=json,
            headers=headers,
            timeout=self.timeout_seconds,
        )
        if r.status_code >= 400:
            try:
                message = (r.json() or {}).get("message") or "An error occurred"
            except ValueError:
                message = "Something went wrong"
            raise ApiError(r.status_code, str(message))
        return r.json()

    # -- auth

    def register(self, username: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/register", {"username": username, "password": password})
        self.context.login(data["token"], data["user"])
        return data

    def login(self, username: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/login", {"username": username, "password": password})
        self.context.login(data["token"], data["user"])
        return data

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/me")

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        return self.request(
            "PUT",
            "/auth/me/password",
            {"currentPassword": current_password, "newPassword": new_password},
        )

    # -- chat

    def send_message(self, prompt: str, model: Optional[str] = None) -> str:
        body: Dict[str, Any] = {"prompt": prompt}
        if model:
            body["model"] = model
        return str(self.request("POST", "/chat/message", body)["response"])

    def history(self) -> List[Dict[str, Any]]:
        return list(self.request("GET", "/chat/history").get("messages") or [])

    def clear_history(self) -> Dict[str, Any]:
        return self.request("DELETE", "/chat/history")

    def models(self) -> List[str]:
        return list(self.request("GET", "/chat/models").get("models") or [])

    # -- admin

    def list_users(self) -> List[Dict[str, Any]]:
        return list(self.request("GET", "/admin/users"))

    def set_role(self, user_id: int, role: str) -> Dict[str, Any]:
        return self.request("PUT", f"/admin/users/{int(user_id)}/role", {"role": role})

    def delete_user(self, user_id: int) -> Dict[str, Any]:
        return self.request("DELETE", f"/admin/users/{int(user_id)}")
