"""
OG Studio HTTP server.

Serves the GitHub OAuth login flow and a JSON surface for the image editor: images are
listed/created, and an editor is driven by posting the same key/click events a browser
would produce.
"""

from __future__ import annotations

import logging
import os
import time
from functools import lru_cache
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from ogstudio.auth.config import GITHUB_OAUTH_STATE_COOKIE, GITHUB_OAUTH_STATE_TTL_SECONDS, load_auth_config
from ogstudio.editor.events import (
    BODY,
    CANVAS_ROOT,
    ClickEvent,
    EventTarget,
    KeyEvent,
    element_target,
    handle_target,
)
from ogstudio.editor.sessions import EditorSessions
from ogstudio.storage.local_store import LocalImageStore

logger = logging.getLogger(__name__)

USER_ID_LENGTH = 15

app = FastAPI(title="OG Studio")


def _is_public_path(path: str) -> bool:
    if path == "/healthz":
        return True
    # Login/callback endpoints must be reachable without a session.
    if path in ("/api/auth/github", "/api/auth/github/callback"):
        return True
    # Allow logout even if the cookie is already missing/invalid.
    if path == "/api/auth/logout":
        return True
    return False


def _get_db_connection():
    """Get a Postgres connection, or return None if not configured."""
    try:
        from ogstudio.db import get_connection

        return get_connection()
    except Exception as e:
        logger.debug("Failed to connect to Postgres: %s", str(e))
        return None


@lru_cache(maxsize=1)
def _get_image_store() -> LocalImageStore:
    return LocalImageStore(base_dir=(os.getenv("IMAGES_DIR", "") or "").strip() or "./images")


@lru_cache(maxsize=1)
def _get_editor_sessions() -> EditorSessions:
    return EditorSessions(_get_image_store())


@app.on_event("startup")
def _startup_maybe_migrate_db() -> None:
    """
    Optional dev behavior: auto-apply DB migrations when DB_AUTO_MIGRATE=1.

    This should never prevent the server from starting; failures are logged.
    """
    try:
        from ogstudio.db.migrate import maybe_auto_migrate

        did_attempt, msg = maybe_auto_migrate()
        if did_attempt:
            logger.info("DB migrations: %s", msg)
    except Exception as e:
        logger.warning("DB migrations: startup auto-migrate failed: %s", str(e))

    cfg = load_auth_config()
    logger.info(
        "Auth config: github_enabled=%s public_base_url=%s cookie_secure=%s",
        cfg.github_enabled,
        cfg.public_base_url,
        cfg.cookie_secure,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests and enforce auth on non-public paths."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    try:
        path = request.url.path or ""

        if request.method != "OPTIONS" and not _is_public_path(path):
            from ogstudio.auth.deps import authenticate_request

            user = authenticate_request(request)
            if user is None:
                return JSONResponse(status_code=401, content={"detail": "Unauthorized"})
            request.state.user = user

        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


# ---- GitHub OAuth ----
@app.get("/api/auth/github")
def auth_login_github() -> Response:
    """Start the GitHub OAuth flow: remember a random state and redirect to GitHub."""
    from ogstudio.auth.github import build_authorize_url
    from ogstudio.auth.util import random_token

    cfg = load_auth_config()
    if not cfg.github_enabled:
        raise HTTPException(status_code=403, detail="GitHub login is not enabled")

    state = random_token(32)
    resp = RedirectResponse(url=build_authorize_url(cfg, state=state), status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(
        key=GITHUB_OAUTH_STATE_COOKIE,
        value=state,
        max_age=GITHUB_OAUTH_STATE_TTL_SECONDS,
        httponly=True,
        secure=cfg.cookie_secure,
        samesite="lax",
        path="/",
    )
    return resp


@app.get("/api/auth/github/callback")
def auth_callback_github(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
) -> Response:
    """
    Handle GitHub's redirect after consent.

    400: missing/mismatched state, or GitHub rejected the code.
    500: anything else (network, bad response, database).
    302 to `/` once a session cookie is set.
    """
    from ogstudio.auth import session as auth_session
    from ogstudio.auth import users
    from ogstudio.auth.github import OAuth2RequestError, fetch_github_user, validate_authorization_code
    from ogstudio.auth.models import User
    from ogstudio.auth.util import generate_id

    cfg = load_auth_config()
    stored_state = request.cookies.get(GITHUB_OAUTH_STATE_COOKIE)
    if not code or not state or not stored_state or state != stored_state:
        return Response(status_code=400)

    try:
        tokens = validate_authorization_code(cfg, code)
        github_user = fetch_github_user(tokens["access_token"])

        conn = _get_db_connection()
        if conn is None:
            raise RuntimeError("Database not configured")
        try:
            user = users.find_user_by_github_id(conn, github_user.id)
            if user is None:
                user = User(
                    id=generate_id(USER_ID_LENGTH),
                    github_id=github_user.id,
                    name=github_user.display_name,
                    avatar=github_user.avatar_url,
                )
                users.insert_user(conn, user)
                logger.info("Created user %s for GitHub account %s", user.id, github_user.login)
            session = auth_session.create_session(conn, cfg, user.id)
            # Sign before committing: any failure up to here leaves nothing behind.
            cookie = auth_session.create_session_cookie(cfg, session)
            conn.commit()
        finally:
            conn.close()
    except OAuth2RequestError as e:
        logger.warning("GitHub rejected the authorization code: %s", str(e))
        return Response(status_code=400)
    except Exception:
        logger.exception("GitHub login failed")
        return Response(status_code=500)

    resp = RedirectResponse(url="/", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**cookie.set_cookie_kwargs())
    return resp


@app.post("/api/auth/logout")
def auth_logout(request: Request) -> Response:
    from ogstudio.auth.session import (
        create_blank_session_cookie,
        invalidate_session,
        read_session_id,
        session_cookie_name,
    )

    cfg = load_auth_config()
    session_id = read_session_id(cfg, request.cookies.get(session_cookie_name(cfg)))
    if session_id:
        conn = _get_db_connection()
        if conn is not None:
            try:
                invalidate_session(conn, session_id)
            finally:
                conn.close()

    resp = RedirectResponse(url="/", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**create_blank_session_cookie(cfg).set_cookie_kwargs())
    return resp


@app.get("/api/auth/me")
def auth_me(request: Request) -> Dict[str, Any]:
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {
        "ok": True,
        "user": {"id": user.id, "githubId": user.github_id, "name": user.name, "avatar": user.avatar},
    }


# ---- Images + editor ----
class CreateImageRequest(BaseModel):
    name: str = "Untitled"


class EditorEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["keydown", "click"]
    key: str = ""
    shift_key: bool = Field(False, alias="shiftKey")
    meta_key: bool = Field(False, alias="metaKey")
    ctrl_key: bool = Field(False, alias="ctrlKey")
    # What the event landed on: page body, a form field, an element or its resize handle,
    # the canvas root, or anything else on the page.
    target: Literal["body", "input", "element", "handle", "canvas", "outside"] = "body"
    element_id: Optional[str] = Field(None, alias="elementId")


def _event_target(body: EditorEventRequest) -> EventTarget:
    if body.target == "body":
        return BODY
    if body.target == "canvas":
        return CANVAS_ROOT
    if body.target == "element" and body.element_id:
        return element_target(body.element_id)
    if body.target == "handle" and body.element_id:
        return handle_target(body.element_id)
    if body.target == "input":
        return EventTarget(tag="input")
    return EventTarget(tag="div")


def _editor_payload(editor) -> Dict[str, Any]:  # type: ignore[no-untyped-def]
    store = editor.store
    notices = list(editor.state.notices)
    editor.state.notices.clear()
    return {
        "ok": True,
        "imageId": editor.image_id,
        "selectedElementId": store.selected_element_id,
        "elements": [e.model_dump(mode="json", by_alias=True) for e in store.elements],
        "canUndo": store.can_undo,
        "canRedo": store.can_redo,
        "hasClipboard": editor.state.has_element_in_clipboard(),
        "notices": notices,
    }


@app.get("/api/images")
def list_images() -> Dict[str, Any]:
    images = _get_image_store().list_images()
    return {
        "ok": True,
        "images": [
            {"id": i.id, "name": i.name, "elements": len(i.elements), "updatedAt": i.updated_at.isoformat()}
            for i in images
        ],
    }


@app.post("/api/images")
def create_image(body: CreateImageRequest) -> Dict[str, Any]:
    image = _get_image_store().create_image(body.name)
    return {"ok": True, "image": {"id": image.id, "name": image.name}}


@app.get("/api/images/{image_id}/editor")
def open_editor(request: Request, image_id: str) -> Any:
    user = request.state.user
    editor, redirect = _get_editor_sessions().open(user.id, image_id)
    if redirect is not None:
        return RedirectResponse(url=redirect, status_code=302)
    with editor.lock:
        return _editor_payload(editor)


@app.post("/api/images/{image_id}/editor/events")
def dispatch_editor_event(request: Request, image_id: str, body: EditorEventRequest) -> Any:
    user = request.state.user
    editor = _get_editor_sessions().get(user.id, image_id)
    if editor is None:
        raise HTTPException(status_code=409, detail="Editor is not open for this image")

    target = _event_target(body)
    with editor.lock:
        if body.type == "click":
            # Element-level handler: clicking an element (or its handle) selects it.
            if target.element_id and editor.store.find(target.element_id) is not None:
                editor.store.set_selected_element_id(target.element_id)
            event = editor.dispatch(ClickEvent(target=target))
        else:
            event = editor.dispatch(
                KeyEvent(
                    target=target,
                    key=body.key,
                    shift_key=body.shift_key,
                    meta_key=body.meta_key,
                    ctrl_key=body.ctrl_key,
                )
            )

        payload = _editor_payload(editor)
    payload["defaultPrevented"] = event.default_prevented
    return payload


@app.delete("/api/images/{image_id}/editor")
def close_editor(request: Request, image_id: str) -> Dict[str, Any]:
    _get_editor_sessions().close(request.state.user.id, image_id)
    return {"ok": True}


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    logger.info("Starting OG Studio server on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
