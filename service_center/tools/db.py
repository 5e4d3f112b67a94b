from __future__ import annotations

import sys

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from .. import models  # noqa: F401  registers the tables on SQLModel.metadata
from ..config import get_engine


def _print_tables(engine: Engine) -> None:
    existing = set(inspect(engine).get_table_names())
    for table in SQLModel.metadata.sorted_tables:
        marker = "ok" if table.name in existing else "missing"
        print(f"{table.name}: {marker}")


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m service_center.tools.db [init|doctor] [URL]")
        return
    cmd = sys.argv[1]
    # Resolve engine: prefer explicit URL arg or environment settings
    engine = get_engine()
    if len(sys.argv) >= 3:
        url = sys.argv[2]
        if "://" not in url:
            # Treat as SQLite file path
            url = f"sqlite:///{url}"
        engine = create_engine(url)
    print(f"Database: {engine.url.render_as_string(hide_password=True)}")
    print(f"Dialect: {engine.dialect.name}")
    if cmd == "init":
        SQLModel.metadata.create_all(engine)
        print("Schema created")
    elif cmd == "doctor":
        _print_tables(engine)
    else:
        print("Unknown command", cmd)


if __name__ == "__main__":  # pragma: no cover
    main()
