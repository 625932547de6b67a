#!/usr/bin/env python3
"""
Initialize the Shuttlebook database.

Usage:
    python scripts/init_db.py [--no-seed]

This script:
1. Checks the database connection
2. Creates the tables if they do not exist
3. Loads the demo routes, students and bookings (unless --no-seed)
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import config
from db import database
from db.repository import SqlAlchemyRepository
from db.seed import seed_demo_data


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    print("=" * 60)
    print("Shuttlebook Database Initialization")
    print("=" * 60)

    if not config.USE_DATABASE:
        print("\nDatabase is disabled (USE_DATABASE=false)")
        print("   Set USE_DATABASE=true to enable persistence.")
        return 0

    print(f"\nDatabase URL: {config.get_config_dict()['DATABASE_URL']}")

    print("\nInitializing database connection...")
    engine = database.engine or database.init_engine()
    if engine is None:
        print("\nFailed to connect to database!")
        print("\nPossible solutions:")
        print("  1. Make sure PostgreSQL is running")
        print("  2. Check DATABASE_URL")
        print("  3. Verify PostgreSQL credentials")
        return 1

    print("\nCreating tables...")
    try:
        database.create_tables()
    except Exception as e:
        print(f"Error creating tables: {e}")
        return 1

    from sqlalchemy import inspect
    print("\nAvailable tables:")
    for table_name in inspect(engine).get_table_names():
        print(f"   - {table_name}")

    if "--no-seed" not in argv:
        with database.session_scope() as db:
            seeded = seed_demo_data(SqlAlchemyRepository(db))
        print("\nDemo data loaded" if seeded else "\nDemo data already present")

    print("\n" + "=" * 60)
    print("Database initialization complete!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
