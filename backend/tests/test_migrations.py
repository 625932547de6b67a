"""
The Alembic migration builds the same schema as the ORM models.
"""

import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "db" / "migrations" / "versions"


def _load_initial_migration():
    path = next(VERSIONS_DIR.glob("*001_initial_schema.py"))
    loader_spec = importlib.util.spec_from_file_location("initial_schema", path)
    module = importlib.util.module_from_spec(loader_spec)
    loader_spec.loader.exec_module(module)
    return module


def test_upgrade_and_downgrade_on_sqlite():
    migration = _load_initial_migration()
    assert migration.revision == "001"
    assert migration.down_revision is None

    engine = create_engine("sqlite:///:memory:")
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            migration.upgrade()

        inspector = inspect(conn)
        assert set(inspector.get_table_names()) == {
            "routes", "stops", "students", "bookings", "driver_assignments",
        }
        stop_columns = {c["name"] for c in inspector.get_columns("stops")}
        assert {"morning_order", "afternoon_order", "early_release_afternoon_dropoff_time"} <= stop_columns
        unique_names = {u["name"] for u in inspector.get_unique_constraints("stops")}
        assert unique_names == {"uq_stop_morning_order", "uq_stop_afternoon_order"}
        assert "ix_bookings_slot" in {i["name"] for i in inspector.get_indexes("bookings")}

        with Operations.context(context):
            migration.downgrade()
        assert inspect(conn).get_table_names() == []


def test_migration_matches_models():
    from db.models import Base

    migration = _load_initial_migration()
    engine = create_engine("sqlite:///:memory:")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
        inspector = inspect(conn)
        for table in Base.metadata.sorted_tables:
            migrated = {c["name"] for c in inspector.get_columns(table.name)}
            assert migrated == {c.name for c in table.columns}, table.name
