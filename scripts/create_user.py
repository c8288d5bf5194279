#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from loginlab.auth.gateway import CredentialStoreError, SafeCredentialGateway
from loginlab.auth.validation import CredentialValidationError, validate_credentials
from loginlab.config import Settings
from loginlab.infra.db import create_db_engine, init_schema


def main() -> None:
    settings = Settings.from_env()
    engine = create_db_engine(settings.database_url, pool_size=1)
    init_schema(engine)

    username = input("Username: ")
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords no coinciden")

    try:
        validate_credentials(username, pw1)
        SafeCredentialGateway(engine).signup(username, pw1)
    except CredentialValidationError as e:
        raise SystemExit(f"Falta {e.field}")
    except CredentialStoreError as e:
        raise SystemExit(f"No se pudo crear el usuario: {e}")
    print(f"OK -> {username} @ {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
