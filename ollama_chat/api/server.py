from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ollama_chat import __version__
from ollama_chat.config import Config, load_config
from ollama_chat.db import connect, init_db
from ollama_chat.schema import ROLES

from ollama_chat.auth import get_current_user, require_admin, require_super_admin
from ollama_chat.auth.crud import (
    bootstrap_admin_if_needed,
    create_user,
    delete_user,
    get_user_by_id,
    list_users,
    public_user,
    touch_last_login,
    update_password,
    update_role,
    verify_user_credentials,
)
from ollama_chat.auth.security import create_access_token, verify_password
from ollama_chat.chat.crud import append_message, clear_history, get_history
from ollama_chat.ollama.client import OllamaError, generate, list_models


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def get_config(request: Request) -> Config:
    return request.app.state.cfg


@contextmanager
def _server_errors(detail: str) -> Iterator[None]:
    """Turn unexpected failures (DB etc.) into a 500 with a handler-specific message."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as e:
        _debug(f"{detail}: {e!r}")
        raise HTTPException(status_code=500, detail=detail) from e


def _issue_token(cfg: Config, user: Dict[str, Any]) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["id"]),
        role=str(user["role"]),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


def _session_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": user["id"], "username": user["username"], "role": user["role"]}


# -----------------------------
# Auth
# -----------------------------

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


class Credentials(BaseModel):
    username: str
    password: str


class PasswordChangeRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


@auth_router.post("/register", status_code=201)
def auth_register(payload: Credentials, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    if not payload.username.strip() or not payload.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    with _server_errors("Server error during registration"), connect(cfg.DB_DSN) as conn:
        try:
            u = create_user(conn, username=payload.username, password=payload.password, role="user")
        except ValueError as e:
            if str(e) == "username_exists":
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=400, detail=str(e))

        token = _issue_token(cfg, u)

    return {"token": token, "message": "User registered successfully", "user": _session_user(u)}


@auth_router.post("/login")
def auth_login(payload: Credentials, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with _server_errors("Server error during login"), connect(cfg.DB_DSN) as conn:
        row = verify_user_credentials(conn, payload.username, payload.password)
        if row is None:
            # Same answer for unknown users and wrong passwords.
            raise HTTPException(status_code=400, detail="Invalid Credentials")

        touch_last_login(conn, int(row["user_id"]))
        u = public_user(row)
        token = _issue_token(cfg, u)

    return {"token": token, "message": "Logged in successfully", "user": _session_user(u)}


@auth_router.get("/me")
def auth_me(
    identity: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with _server_errors("Server error fetching user details"), connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, int(identity["id"]))
        if row is None:
            raise HTTPException(status_code=404, detail="User not found")
        return public_user(row)


@auth_router.put("/me/password")
def auth_change_password(
    payload: PasswordChangeRequest,
    identity: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if not payload.currentPassword or not payload.newPassword:
        raise HTTPException(status_code=400, detail="Current password and new password are required")

    with _server_errors("Server error updating password"), connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, int(identity["id"]))
        if row is None:
            raise HTTPException(status_code=404, detail="User not found")

        if not verify_password(payload.currentPassword, str(row["password_hash"])):
            raise HTTPException(status_code=400, detail="Invalid current password")

        update_password(conn, int(row["user_id"]), payload.newPassword)

    return {"message": "Password updated successfully"}


# -----------------------------
# Admin
# -----------------------------

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class RoleUpdateRequest(BaseModel):
    role: Optional[str] = None


@admin_router.get("/users")
def admin_list_users(
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    with _server_errors("Server error fetching users"), connect(cfg.DB_DSN) as conn:
        return list_users(conn)


@admin_router.put("/users/{user_id}/role")
def admin_update_role(
    user_id: int,
    payload: RoleUpdateRequest,
    _admin: Dict[str, Any] = Depends(require_super_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if payload.role not in ROLES:
        raise HTTPException(status_code=400, detail="Invalid role specified")

    with _server_errors("Server error updating user role"), connect(cfg.DB_DSN) as conn:
        u = update_role(conn, user_id, payload.role)
        if u is None:
            raise HTTPException(status_code=404, detail="User not found")

    return {"message": "User role updated successfully", "user": u["username"], "newRole": u["role"]}


@admin_router.delete("/users/{user_id}")
def admin_delete_user(
    user_id: int,
    admin: Dict[str, Any] = Depends(require_super_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if int(admin["id"]) == int(user_id):
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    with _server_errors("Server error deleting user"), connect(cfg.DB_DSN) as conn:
        u = delete_user(conn, user_id)
        if u is None:
            raise HTTPException(status_code=404, detail="User not found")

    return {"message": "User deleted successfully", "user": u["username"]}


# -----------------------------
# Chat
# -----------------------------

chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatMessageRequest(BaseModel):
    model: Optional[str] = None
    prompt: Optional[str] = None


@chat_router.post("/message")
def chat_message(
    payload: ChatMessageRequest,
    identity: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    prompt = payload.prompt or ""
    if not prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")

    user_id = int(identity["id"])
    model = (payload.model or "").strip() or cfg.OLLAMA_DEFAULT_MODEL

    with _server_errors("Server error saving chat message"), connect(cfg.DB_DSN) as conn:
        append_message(conn, user_id, "user", prompt)

    # No DB connection is held across the model call.
    error: Optional[OllamaError] = None
    try:
        ai_text = generate(cfg.OLLAMA_API_URL, model, prompt, timeout_seconds=cfg.OLLAMA_TIMEOUT_SECONDS)
    except OllamaError as e:
        _debug(f"Ollama call failed (model={model}): {e}")
        error = e
        ai_text = f"Error: {e}"

    # The failure text is stored too, so history matches what the user saw.
    with _server_errors("Server error saving chat message"), connect(cfg.DB_DSN) as conn:
        append_message(conn, user_id, "ai", ai_text)

    if error is not None:
        raise HTTPException(status_code=error.status_code or 500, detail=str(error))
    return {"response": ai_text}


@chat_router.get("/history")
def chat_history(
    identity: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with _server_errors("Server error fetching chat history"), connect(cfg.DB_DSN) as conn:
        return {"messages": get_history(conn, int(identity["id"]))}


@chat_router.delete("/history")
def chat_clear_history(
    identity: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with _server_errors("Server error clearing chat history"), connect(cfg.DB_DSN) as conn:
        if not clear_history(conn, int(identity["id"])):
            raise HTTPException(status_code=404, detail="No chat history found")
    return {"message": "Chat history cleared successfully"}


@chat_router.get("/models")
def chat_models(
    _user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    try:
        models = list_models(cfg.OLLAMA_API_URL, timeout_seconds=cfg.OLLAMA_TIMEOUT_SECONDS)
    except OllamaError as e:
        _debug(f"Ollama model listing failed: {e}")
        raise HTTPException(status_code=e.status_code or 500, detail=str(e))
    return {"models": models}


# -----------------------------
# App
# -----------------------------


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = f"Invalid request: {field} {first.get('msg', '')}".strip()
    else:
        msg = "Invalid request"
    return JSONResponse({"message": msg}, status_code=400)


def create_app(cfg: Config | None = None) -> FastAPI:
    """Build the API. Missing required configuration raises ConfigError."""
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_db(cfg.DB_DSN)

        # Only when the users table is empty and bootstrap credentials are set.
        bootstrap_admin_if_needed(cfg)
        yield

    app = FastAPI(title="Ollama Chat Backend", version=__version__, lifespan=lifespan)
    # Make config available to auth deps.
    app.state.cfg = cfg

    # CORS is needed when the SPA is served from a different origin (Vite dev server).
    if cfg.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cfg.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "Ollama Chat Backend API is running!"

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(chat_router)
    return app
