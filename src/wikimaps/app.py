# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger

from wikimaps.auth.session import COOKIE_NAME, SessionManager
from wikimaps.auth.users import Authenticator, list_users
from wikimaps.config import load_settings
from wikimaps.errors import AuthenticationError, ConflictError, ValidationError, WikimapsError
from wikimaps.infra.db import Store
from wikimaps.infra.models import row_to_dict
from wikimaps.logging_setup import setup_logging
from wikimaps.permissions import (
    CurrentUser,
    cookie_settings,
    current_user_optional,
    get_sessions,
    get_store,
    require_user,
)
from wikimaps.services.map_service import (
    create_map,
    create_point,
    delete_point,
    get_map,
    list_maps,
    list_points,
    maps_flagged_by,
    update_point,
)
from wikimaps.services.page_service import build_home_context
from wikimaps.services.relation_service import create_relation, list_relations, set_favourite

SETTINGS = load_settings()
setup_logging(SETTINGS.log_level)

app = FastAPI(title="Wikimaps")

BASE_DIR = Path(__file__).resolve().parent

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

app.state.settings = SETTINGS
app.state.store = Store.from_url(SETTINGS.database.url, echo=SETTINGS.database.echo)
app.state.store.init_db()
app.state.sessions = SessionManager(app.state.store, max_age=SETTINGS.session_max_age)

logger.info("Wikimaps ready (env={}, db={})", SETTINGS.environment, app.state.store.dialect)


@app.middleware("http")
async def _access_log(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info("{} {} {} {:.1f} ms", request.method, request.url.path, response.status_code, ms)
    return response


@app.exception_handler(WikimapsError)
async def _wikimaps_error_handler(request: Request, exc: WikimapsError):
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    else:
        logger.warning("{} {} rejected: {}", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )


def _render(request: Request, template_name: str, ctx: dict, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the current user."""
    base_ctx = {"current_user": current_user_optional(request)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _render_home(request: Request, *, error: str = "", status_code: int = 200):
    ctx = build_home_context(
        get_store(request),
        current_user_optional(request),
        SETTINGS.googlemaps_api_key,
    )
    ctx["error"] = error
    return _render(request, "index.html", ctx, status_code=status_code)


def _point_fields(**fields) -> dict:
    return {k: v for k, v in fields.items() if v is not None}


# ------------------ Pages ------------------


@app.get("/", response_class=HTMLResponse)
def home(request: Request):
    return _render_home(request)


@app.get("/profile", response_class=HTMLResponse)
def profile(request: Request, user: CurrentUser = Depends(require_user)):
    return _render(request, "profile.html", {"user": user})


# ------------------ Auth ------------------


@app.post("/login")
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    store: Store = Depends(get_store),
):
    resp = RedirectResponse(url="/", status_code=303)
    try:
        u = Authenticator(store).verify(username, password)
    except AuthenticationError as e:
        logger.info("Login failed for '{}': {}", username, e.message)
        return resp
    resp.set_cookie(
        COOKIE_NAME,
        get_sessions(request).sign(u),
        max_age=SETTINGS.session_max_age,
        **cookie_settings(secure=SETTINGS.cookie_secure),
    )
    logger.info("User {} logged in", u.name)
    return resp


@app.post("/register")
def register_post(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    store: Store = Depends(get_store),
):
    try:
        Authenticator(store).register(username, email, password)
    except (ConflictError, ValidationError) as e:
        logger.warning("Registration refused: {}", e.message)
        return _render_home(request, error=e.message, status_code=e.status_code)
    # 307 keeps method and body, so /login receives the same credentials.
    return RedirectResponse(url="/login", status_code=307)


@app.get("/logout")
def logout():
    resp = RedirectResponse(url="/", status_code=303)
    resp.delete_cookie(COOKIE_NAME)
    return resp


# ------------------ Users ------------------


@app.get("/users")
@app.get("/api/users")
def users_index(store: Store = Depends(get_store)):
    return [row_to_dict(u, exclude=("password",)) for u in list_users(store)]


# ------------------ Favourites / contributions ------------------


@app.get("/contributions/{user_id}")
def contributions(user_id: int, store: Store = Depends(get_store)):
    return maps_flagged_by(store, user_id, "contribution")


@app.get("/favourites/{user_id}")
def favourites(user_id: int, store: Store = Depends(get_store)):
    return maps_flagged_by(store, user_id, "favourite")


@app.put("/favourites")
def toggle_favourite(map_id: int, user_id: int, state: bool, store: Store = Depends(get_store)):
    relation_id = set_favourite(store, user_id=user_id, map_id=map_id, state=state)
    return {"id": relation_id}


@app.post("/users_map", response_class=HTMLResponse)
def users_map_create(
    request: Request,
    user_id: int = Form(...),
    map_id: int = Form(...),
    favourite: bool = Form(False),
    contribution: bool = Form(False),
    store: Store = Depends(get_store),
):
    create_relation(store, user_id=user_id, map_id=map_id, favourite=favourite, contribution=contribution)
    return _render_home(request)


# ------------------ Maps ------------------


@app.get("/maps")
def maps_index(store: Store = Depends(get_store)):
    return [row_to_dict(m) for m in list_maps(store)]


@app.get("/maps/{user_id}")
def maps_for_user(user_id: int, store: Store = Depends(get_store)):
    return [row_to_dict(r) for r in list_relations(store, user_id)]


@app.get("/map/{map_id}")
def map_show(map_id: int, store: Store = Depends(get_store)):
    m = get_map(store, map_id)
    return [row_to_dict(m)] if m is not None else []


@app.post("/map", response_class=HTMLResponse)
def map_create(
    request: Request,
    creator_id: Optional[int] = Form(None),
    title: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    store: Store = Depends(get_store),
):
    map_id = create_map(
        store,
        {"creator_id": creator_id, "title": title, "latitude": latitude, "longitude": longitude},
    )
    logger.info("Created map {} '{}'", map_id, title)
    return _render_home(request)


# ------------------ Points ------------------


@app.get("/maps/{map_id}/points")
def points_index(map_id: int, store: Store = Depends(get_store)):
    return [row_to_dict(p) for p in list_points(store, map_id)]


@app.post("/point")
def point_create(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    map_id: Optional[int] = Form(None),
    user_id: Optional[int] = Form(None),
    store: Store = Depends(get_store),
):
    fields = _point_fields(
        title=title,
        description=description,
        image=image,
        latitude=latitude,
        longitude=longitude,
        map_id=map_id,
        user_id=user_id,
    )
    return {"id": create_point(store, fields)}


@app.put("/point/{point_id}")
def point_update(
    point_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    map_id: Optional[int] = Form(None),
    user_id: Optional[int] = Form(None),
    store: Store = Depends(get_store),
):
    fields = _point_fields(
        title=title,
        description=description,
        image=image,
        latitude=latitude,
        longitude=longitude,
        map_id=map_id,
        user_id=user_id,
    )
    return {"id": update_point(store, point_id, fields)}


@app.delete("/point/{point_id}", status_code=204)
def point_delete(point_id: int, store: Store = Depends(get_store)):
    delete_point(store, point_id)
    return Response(status_code=204)
