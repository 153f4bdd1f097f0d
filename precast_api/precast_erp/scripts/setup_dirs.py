"""
Create the runtime directories the service writes to.

Usage:
    python -m precast_erp.scripts.setup_dirs
    precast-setup
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

DIRECTORIES = [
    "data",
    "data/uploads",
    "data/exports",
    "logs",
    "interfaces",
]


# PUBLIC_INTERFACE
def create_app_directories(root: Optional[Path] = None) -> List[Path]:
    """Create every directory in DIRECTORIES under `root` (default: the working directory)."""
    base = root or Path.cwd()
    created = []
    for name in DIRECTORIES:
        path = base / name
        path.mkdir(parents=True, exist_ok=True)
        created.append(path)
    return created


def main() -> None:
    create_app_directories()
    print("All directories created successfully")


if __name__ == "__main__":
    main()
