import importlib

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from wikimaps.auth.session import COOKIE_NAME
from wikimaps.auth.users import Authenticator
from wikimaps.infra.models import User
from wikimaps.services.map_service import create_map
from wikimaps.services.relation_service import create_relation, get_relation, set_favourite


def _login(client, username="alice", password="pw123"):
    return client.post("/login", data={"username": username, "password": password}, follow_redirects=False)


def test_home_renders_for_guest(client, app_store):
    set_favourite(app_store, user_id=0, map_id=8, state=True)

    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert 'data-user-id="0"' in r.text
    assert 'data-favourites="8"' in r.text
    assert "test-maps-key" in r.text


def test_login_success_sets_session_and_redirects_home(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")

    r = _login(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert COOKIE_NAME in r.cookies

    home = client.get("/")
    assert "Signed in as" in home.text
    assert "alice" in home.text


def test_login_failure_redirects_home_without_session(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")

    for username, password in (("alice", "wrong"), ("nobody", "pw123")):
        r = _login(client, username, password)
        assert r.status_code == 303
        assert r.headers["location"] == "/"
        assert COOKIE_NAME not in r.cookies


def test_register_redirects_to_login_preserving_method(client, app_store):
    r = client.post(
        "/register",
        data={"username": "alice", "email": "alice@example.com", "password": "pw123"},
        follow_redirects=False,
    )
    assert r.status_code == 307
    assert r.headers["location"] == "/login"
    assert Authenticator(app_store).verify("alice", "pw123").name == "alice"


def test_register_then_login_end_to_end(client):
    r = client.post("/register", data={"username": "bob", "email": "bob@example.com", "password": "s3cret"})
    assert r.status_code == 200
    assert client.cookies.get(COOKIE_NAME)
    assert client.get("/profile", follow_redirects=False).status_code == 200


def test_register_duplicate_name_is_refused(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")

    r = client.post(
        "/register",
        data={"username": "alice", "email": "x@example.com", "password": "other"},
        follow_redirects=False,
    )
    assert r.status_code == 409
    assert "already exists" in r.text
    with app_store.session() as db:
        assert db.execute(select(func.count(User.id)).where(User.name == "alice")).scalar_one() == 1


def test_profile_requires_session(client, app_store):
    r = client.get("/profile", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"

    Authenticator(app_store).register("alice", "alice@example.com", "pw123")
    _login(client)
    r = client.get("/profile")
    assert r.status_code == 200
    assert "alice@example.com" in r.text


def test_logout_clears_session(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")
    _login(client)

    r = client.get("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert not client.cookies.get(COOKIE_NAME)
    assert client.get("/profile", follow_redirects=False).status_code == 303


def test_users_listing_hides_password_hashes(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")

    for path in ("/users", "/api/users"):
        body = client.get(path).json()
        assert [u["name"] for u in body] == ["alice"]
        assert "password" not in body[0]


def test_toggle_favourite_route(client, app_store):
    r = client.put("/favourites", params={"map_id": 5, "user_id": 1, "state": "true"})
    assert r.status_code == 200
    rid = r.json()["id"]
    rel = get_relation(app_store, user_id=1, map_id=5)
    assert rel.id == rid
    assert rel.favourite is True
    assert rel.contribution is False

    r = client.put("/favourites", params={"map_id": 5, "user_id": 1, "state": "false"})
    assert r.json() == {"id": rid}
    assert get_relation(app_store, user_id=1, map_id=5).favourite is False
    assert len(client.get("/maps/1").json()) == 1


def test_toggle_favourite_rejects_non_boolean_state(client):
    r = client.put("/favourites", params={"map_id": 5, "user_id": 1, "state": "maybe"})
    assert r.status_code == 422


def test_favourites_and_contributions_listings(client, app_store):
    parks = create_map(app_store, {"creator_id": 1, "title": "Parks", "latitude": 1.0, "longitude": 2.0})
    cafes = create_map(app_store, {"creator_id": 1, "title": "Cafes", "latitude": 3.0, "longitude": 4.0})
    create_relation(app_store, user_id=1, map_id=parks, favourite=True, contribution=False)
    create_relation(app_store, user_id=1, map_id=cafes, favourite=False, contribution=True)

    assert client.get("/favourites/1").json() == [{"id": parks, "title": "Parks"}]
    assert client.get("/contributions/1").json() == [{"id": cafes, "title": "Cafes"}]
    assert client.get("/favourites/2").json() == []


def test_map_routes(client, app_store):
    r = client.post("/map", data={"creator_id": 1, "title": "Murals", "latitude": "49.28", "longitude": "-123.12"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")

    maps = client.get("/maps").json()
    assert len(maps) == 1
    assert maps[0]["title"] == "Murals"
    assert maps[0]["latitude"] == 49.28

    map_id = maps[0]["id"]
    assert client.get(f"/map/{map_id}").json()[0]["title"] == "Murals"
    assert client.get("/map/999").json() == []


def test_users_map_route_creates_relation_and_renders_home(client, app_store):
    map_id = create_map(app_store, {"creator_id": 1, "title": "Parks"})
    r = client.post("/users_map", data={"user_id": 0, "map_id": map_id, "favourite": "true", "contribution": "false"})
    assert r.status_code == 200
    assert f'data-favourites="{map_id}"' in r.text

    dup = client.post("/users_map", data={"user_id": 0, "map_id": map_id, "favourite": "false"})
    assert dup.status_code == 409
    assert dup.json()["error"] == "conflict"


def test_point_lifecycle(client, app_store):
    map_id = create_map(app_store, {"creator_id": 1, "title": "Parks"})
    r = client.post(
        "/point",
        data={
            "title": "Fountain",
            "description": "Old fountain",
            "image": "http://img/fountain.png",
            "latitude": "49.1",
            "longitude": "-123.1",
            "map_id": map_id,
            "user_id": 1,
        },
    )
    assert r.status_code == 200
    point_id = r.json()["id"]

    points = client.get(f"/maps/{map_id}/points").json()
    assert [p["id"] for p in points] == [point_id]

    r = client.put(f"/point/{point_id}", data={"title": "Big fountain"})
    assert r.json() == {"id": point_id}
    updated = client.get(f"/maps/{map_id}/points").json()[0]
    assert updated["title"] == "Big fountain"
    assert updated["description"] == "Old fountain"

    assert client.delete(f"/point/{point_id}").status_code == 204
    assert client.get(f"/maps/{map_id}/points").json() == []


def test_missing_point_is_not_found(client):
    r = client.put("/point/404", data={"title": "x"})
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
    assert client.delete("/point/404").status_code == 404


def test_store_fault_is_a_structured_error(client, app_store):
    with app_store.engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE points")

    r = client.get("/maps/1/points")
    assert r.status_code == 500
    assert r.json()["error"] == "store_error"


def test_session_cookie_follows_settings(app_module, monkeypatch):
    monkeypatch.setenv("WIKIMAPS_COOKIE_SECURE", "true")
    monkeypatch.setenv("WIKIMAPS_SESSION_MAX_AGE", "60")
    module = importlib.reload(app_module)
    client = TestClient(module.app)
    Authenticator(module.app.state.store).register("alice", "alice@example.com", "pw123")

    assert module.app.state.sessions.max_age == 60
    r = _login(client)
    cookie = r.headers["set-cookie"].lower()
    assert cookie.startswith(COOKIE_NAME)
    assert "secure" in cookie
    assert "max-age=60" in cookie


def test_session_cookie_is_not_secure_by_default(client, app_store):
    Authenticator(app_store).register("alice", "alice@example.com", "pw123")
    cookie = _login(client).headers["set-cookie"].lower()
    assert "secure" not in cookie


def test_map_without_title_stores_null_like_points(client, app_store):
    client.post("/map", data={"creator_id": 1})
    map_id = client.get("/maps").json()[0]["id"]
    assert client.get(f"/map/{map_id}").json()[0]["title"] is None

    point_id = client.post("/point", data={"map_id": map_id}).json()["id"]
    point = client.get(f"/maps/{map_id}/points").json()[0]
    assert point["id"] == point_id
    assert point["title"] is None
