#!/usr/bin/env python3
"""Quick migration runner.

Usage:
    python3 run_migration.py                       # every file in migrations/, in order
    python3 run_migration.py migrations/0002_agent_conversations.sql
"""
import os
import sys
from pathlib import Path

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

if len(sys.argv) > 1:
    migration_files = [Path(arg) for arg in sys.argv[1:]]
else:
    migration_files = sorted(MIGRATIONS_DIR.glob("*.sql"))

if not migration_files:
    print(f"❌ No migrations found in {MIGRATIONS_DIR}")
    sys.exit(1)

try:
    import psycopg2
except ImportError:
    print("❌ psycopg2 not installed. Install with: pip install -e '.[migrations]'")
    print("\nOr run these files manually in the Supabase SQL editor:\n")
    for migration_file in migration_files:
        print(f"  - {migration_file}")
    sys.exit(1)

database_url = os.getenv("DATABASE_URL")
if not database_url:
    print("❌ DATABASE_URL environment variable not set")
    sys.exit(1)

print("🔌 Connecting to database...")
conn = psycopg2.connect(database_url)
cursor = conn.cursor()
print("✅ Connected!\n")

try:
    for migration_file in migration_files:
        sql = migration_file.read_text()
        print(f"📄 Migration file: {migration_file} ({len(sql)} bytes)")
        cursor.execute(sql)
        conn.commit()
        print("✅ Applied\n")
except Exception as e:
    conn.rollback()
    print(f"❌ Error running migration: {e}")
    sys.exit(1)
finally:
    cursor.close()
    conn.close()

print(f"✅ {len(migration_files)} migration(s) complete!")
