from __future__ import annotations

import json
import logging

from precast_erp.api.generate_openapi import write_openapi
from precast_erp.core.logging import configure_logging, correlation_id_var
from precast_erp.db.run_migrations import MIGRATIONS_DIR, build_config
from precast_erp.scripts.setup_dirs import DIRECTORIES, create_app_directories


def test_create_app_directories(tmp_path):
    created = create_app_directories(tmp_path)
    assert [p.relative_to(tmp_path).as_posix() for p in created] == DIRECTORIES
    assert all(p.is_dir() for p in created)
    # Second run is a no-op
    assert create_app_directories(tmp_path) == created


def test_build_config_points_at_packaged_migrations():
    cfg = build_config()
    assert cfg.get_main_option("script_location") == str(MIGRATIONS_DIR)
    assert (MIGRATIONS_DIR / "env.py").exists()
    assert cfg.get_main_option("sqlalchemy.url").startswith("sqlite")


def test_write_openapi(tmp_path):
    path = write_openapi(str(tmp_path / "interfaces"))
    with open(path) as f:
        schema = json.load(f)
    assert "/api/v1/health" in schema["paths"]
    assert "/api/v1/sales/leads" in schema["paths"]


def test_configure_logging_writes_correlation_id(tmp_path):
    log_file = tmp_path / "logs" / "precast.log"
    configure_logging("info", str(log_file))
    token = correlation_id_var.set("cid-42")
    try:
        logging.getLogger("precast_erp.test").info("poured bed 3")
    finally:
        correlation_id_var.reset(token)
        for handler in logging.getLogger().handlers:
            handler.flush()

    line = log_file.read_text().strip()
    assert "| INFO | precast_erp.test | cid=cid-42 | poured bed 3" in line
    assert logging.getLogger("httpx").level == logging.WARNING

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
