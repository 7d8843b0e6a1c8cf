"""
Import a browser localStorage dump of the original application.

Usage:
    python backend/import_local_storage.py dump.json

``dump.json`` is a JSON object with the keys ``warehouses``, ``trucks`` and
``users`` as exported from the browser (values may be the raw stored
strings).
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.observability import configure_logging
from backend.app.db.session import AsyncSessionLocal, create_tables
from backend.app.services.local_storage_import import import_dump


async def run_import(path: Path) -> int:
    try:
        dump = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"❌ Cannot read {path}: {exc}")
        return 1

    if not isinstance(dump, dict):
        print("❌ Expected a JSON object with warehouses/trucks/users keys")
        return 1

    await create_tables()
    async with AsyncSessionLocal() as db:
        report = await import_dump(db, dump)

    print(f"✅ Imported {report.warehouses} warehouses, {report.users} users, {report.trucks} trucks")
    if report.skipped:
        print(f"⚠️  Skipped {report.skipped} records (see log)")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    configure_logging()
    sys.exit(asyncio.run(run_import(Path(sys.argv[1]))))
