"""Backup the local snapshot.

Writes the same JSON document the /api/backup endpoint serves, plus an
Excel workbook of every collection, into ./backups. Works offline: only the
local snapshot is read.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.academy_manager.academy_manager.container import build_container


def main() -> None:
    settings = load_settings()
    container = build_container(settings)

    out_dir = REPO_ROOT / "backups"
    out_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    json_file = out_dir / f"academy_backup_{stamp}.json"
    xlsx_file = out_dir / f"academy_data_{stamp}.xlsx"

    json_file.write_text(json.dumps(container.backup_service.export_backup(), indent=2), encoding="utf-8")
    container.backup_service.export_workbook(xlsx_file)
    print(f"OK: Backup created: {json_file}")
    print(f"OK: Workbook created: {xlsx_file}")


if __name__ == "__main__":
    main()
