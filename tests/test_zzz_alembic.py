"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
"""

import uuid
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

ROOT = Path(__file__).resolve().parent.parent


def _config(db_path: Path) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    cfg.attributes["configure_logger"] = False
    return cfg


def test_alembic_upgrade_head(tmp_path: Path) -> None:
    """alembic upgrade head creates every table."""
    db_path = tmp_path / "migrated.db"
    command.upgrade(_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"user_achievements", "user_collections", "collection_items", "user_notifications"} <= tables


def test_alembic_downgrade_base(tmp_path: Path) -> None:
    """Downgrading to base drops everything the upgrade created."""
    db_path = tmp_path / "migrated.db"
    cfg = _config(db_path)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert tables <= {"alembic_version"}


def test_collection_display_defaults_live_in_schema(tmp_path: Path) -> None:
    """Rows written without the ORM still get the default color, icon and counters."""
    db_path = tmp_path / "migrated.db"
    command.upgrade(_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO user_collections (id, owner_id, name) VALUES (:id, :owner, 'Raw')"),
                {"id": uuid.uuid4().hex, "owner": uuid.uuid4().hex},
            )
            row = conn.execute(text("SELECT color, icon, is_public, items_count FROM user_collections")).one()
    finally:
        engine.dispose()
    assert row.color == "#8B5CF6"
    assert row.icon == "\U0001f4da"
    assert not row.is_public
    assert row.items_count == 0
