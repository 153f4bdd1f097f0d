"""
Write the OpenAPI document of the service to interfaces/openapi.json.

Usage:
    python -m precast_erp.api.generate_openapi [output_dir]
"""

from __future__ import annotations

import json
import os
import sys
from typing import List, Optional


# PUBLIC_INTERFACE
def write_openapi(output_dir: str = "interfaces") -> str:
    """Render the app's OpenAPI schema to <output_dir>/openapi.json and return the path."""
    from precast_erp.api.main import app, openapi_tags

    openapi_schema = app.openapi()

    # Keep tag descriptions even for tags no operation uses yet
    known = {t.get("name") for t in openapi_schema.get("tags", [])}
    openapi_schema["tags"] = openapi_schema.get("tags", []) + [t for t in openapi_tags if t["name"] not in known]

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, "openapi.json")
    with open(output_path, "w") as f:
        json.dump(openapi_schema, f, indent=2)
    return output_path


def main(argv: Optional[List[str]] = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)
    path = write_openapi(*args[:1])
    print(f"OpenAPI schema written to {path}")


if __name__ == "__main__":
    main()
