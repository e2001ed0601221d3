#!/usr/bin/env python3
"""Load the persona template and user dossiers into the memory store.

The bot only reads these; this script is how they get there.

Usage examples:
    # Persona template only
    uv run python scripts/seed_store.py --persona persona.txt

    # Dossiers from a CSV with columns user_id,nickname,relationship
    uv run python scripts/seed_store.py --dossiers dossiers.csv

    # Both, against a specific local database
    uv run python scripts/seed_store.py --persona persona.txt --dossiers dossiers.csv --db data/yuzu.db
"""

import argparse
import asyncio
import csv
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings
from src.memory.models import Dossier
from src.memory.store import DOSSIER_PLACEHOLDER, SqlMemoryStore


def read_dossiers(path: Path) -> list[Dossier]:
    """Parse a dossier CSV. Rows without a user_id or nickname are skipped."""
    dossiers = []
    with path.open(newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            user_id = (row.get("user_id") or "").strip()
            nickname = (row.get("nickname") or "").strip()
            if not user_id or not nickname:
                continue
            dossiers.append(
                Dossier(
                    user_id=user_id,
                    nickname=nickname,
                    relationship=(row.get("relationship") or "").strip(),
                )
            )
    return dossiers


async def seed(store: SqlMemoryStore, persona: Path | None, dossiers: Path | None) -> None:
    if persona is not None:
        template = persona.read_text(encoding="utf-8")
        if DOSSIER_PLACEHOLDER not in template:
            print(f"WARNING: persona template has no {DOSSIER_PLACEHOLDER} placeholder", file=sys.stderr)
        await store.set_persona_template(template)
        print(f"Persona template loaded from {persona} ({len(template)} chars)")

    if dossiers is not None:
        rows = read_dossiers(dossiers)
        for dossier in rows:
            await store.upsert_dossier(dossier)
        print(f"Loaded {len(rows)} dossier(s) from {dossiers}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the persona template and dossiers")
    parser.add_argument("--persona", type=Path, help="Text file holding the persona template")
    parser.add_argument("--dossiers", type=Path, help="CSV with user_id,nickname,relationship")
    parser.add_argument("--db", type=Path, default=settings.database_path, help="Local database file")
    args = parser.parse_args()

    if args.persona is None and args.dossiers is None:
        parser.error("nothing to do: pass --persona and/or --dossiers")

    store = SqlMemoryStore(
        args.db,
        remote_url=settings.turso_database_url,
        auth_token=settings.turso_auth_token,
    )
    asyncio.run(seed(store, args.persona, args.dossiers))


if __name__ == "__main__":
    main()
