#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from wikimaps.auth.users import Authenticator
from wikimaps.config import load_settings
from wikimaps.errors import WikimapsError
from wikimaps.infra.db import Store


def main() -> None:
    settings = load_settings()
    store = Store.from_url(settings.database.url)
    store.init_db()

    username = input("Username: ").strip()
    email = input("Email: ").strip()

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = Authenticator(store).register(username, email, pw1)
    except WikimapsError as e:
        raise SystemExit(e.message)
    print(f"OK -> {user.name} (id={user.id}) in {settings.database.url}")


if __name__ == "__main__":
    main()
