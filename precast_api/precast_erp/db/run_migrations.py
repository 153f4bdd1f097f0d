"""
Programmatic Alembic migration runner.

Allows running migrations without an alembic.ini by configuring the script location
to this package's migrations directory.

Usage examples:
    python -m precast_erp.db.run_migrations upgrade head
    python -m precast_erp.db.run_migrations downgrade -1
    python -m precast_erp.db.run_migrations history
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List

from alembic import command
from alembic.config import Config


MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# Alembic command -> (function, default positional args)
COMMANDS = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "stamp": (command.stamp, ["head"]),
    "current": (command.current, []),
    "history": (command.history, []),
    "heads": (command.heads, []),
}


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config pointing at the packaged migrations and the configured database."""
    from precast_erp.db.config import get_settings

    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats "%" specially (e.g. in URL-encoded passwords).
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cmd, other = args[0], args[1:]
    if cmd not in COMMANDS:
        print(f"Unsupported Alembic command: {cmd} (choose from {', '.join(COMMANDS)})")
        sys.exit(2)
    func, defaults = COMMANDS[cmd]
    func(build_config(), *(other or defaults))


if __name__ == "__main__":
    main()
