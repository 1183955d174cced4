"""Export and import of the full ledger as a JSON document."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import IO, Any, Dict, Optional, Union

from .config import EXPORTS_DIR
from .ledger import LedgerStore
from .log import get_logger

logger = get_logger(__name__)

EXPORT_PREFIX = 'pocket_finance_export'


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{EXPORT_PREFIX}_{today.isoformat()}.json"


def write_export(ledger: LedgerStore, directory: Optional[Path] = None, today: Optional[date] = None) -> Path:
    """Write ``ledger.export_data()`` into ``directory`` and return the file path."""
    target_dir = Path(directory or EXPORTS_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / export_filename(today)
    try:
        with target.open('w', encoding='utf-8') as handle:
            json.dump(ledger.export_data(), handle, indent=2, ensure_ascii=False)
    except OSError as e:
        raise OSError(f"Failed to write export to {target}: {e}") from e
    logger.info("Exported ledger to %s", target)
    return target


def read_export(source: Union[Path, str, IO]) -> Dict[str, Any]:
    """Load an export document from a path or an open (text or binary) file.

    Raises:
        ValueError: If the document is not a JSON object.
    """
    if hasattr(source, 'read'):
        origin = getattr(source, 'name', 'upload')
        data = json.load(source)
    else:
        origin = Path(source)
        with origin.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Export file {origin} does not contain a JSON object")
    return data


def import_file(ledger: LedgerStore, source: Union[Path, str, IO]):
    """Read ``source`` and replace the ledger contents with it."""
    data = read_export(source)
    status = ledger.import_data(data)
    logger.info("Imported ledger from %s", getattr(source, 'name', source))
    return status
