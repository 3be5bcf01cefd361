#!/usr/bin/env python3
"""
Lists the tables (and row counts) in the SoloMan sqlite database.

Run manually:
  python tools/check_tables.py              # uses DATABASE_PATH / soloman.db
  python tools/check_tables.py path/to.db
"""
import argparse
import json
import os
import sqlite3
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]


def default_db_path() -> str:
    load_dotenv(ROOT / ".env")
    return os.getenv("DATABASE_PATH", str(ROOT / "soloman.db"))


def list_tables(db_path):
    con = sqlite3.connect(str(db_path))
    try:
        names = [r[0] for r in con.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )]
        return [
            {"name": n, "rows": con.execute(f'SELECT COUNT(*) FROM "{n}"').fetchone()[0]}
            for n in names
        ]
    finally:
        con.close()


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("db", nargs="?", default=None)
    args = ap.parse_args(argv)
    db = args.db or default_db_path()

    if not Path(db).exists():
        print(f"❌ No database at {db}")
        return 1
    print(json.dumps(list_tables(db), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
