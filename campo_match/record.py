"""
Persisted match record (JSON).

Layout:
    {
        "schema_version": "1.0",
        "match_id": "...",
        "team_a": {..., "players": [...]},
        "team_b": {...},
        "actions": [GameAction.to_dict(), ...],   # ledger order
        "current_time": 1234
    }
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from .models import DEFAULT_ACTION_TYPES, ActionType
from .session import RECORD_SCHEMA_VERSION, MatchSession

logger = logging.getLogger(__name__)


def save_match_record(path: Path, session: MatchSession) -> Path:
    """Write the session record; parent directories are created."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    record = session.to_record()

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(record, f, ensure_ascii=False, indent=2)
    tmp_path.replace(path)

    logger.info(f"💾 Match record saved: {path} ({len(record['actions'])} actions)")
    return path


def load_match_record(
    path: Path,
    action_types: Optional[Iterable[ActionType]] = None,
) -> MatchSession:
    """
    Rebuild a session from a saved record.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: Invalid JSON, unsupported schema version or invalid content
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Match record not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}")

    version = str(data.get("schema_version", RECORD_SCHEMA_VERSION))
    if version.split(".")[0] != RECORD_SCHEMA_VERSION.split(".")[0]:
        raise ValueError(f"Unsupported match record schema_version: {version}")

    session = MatchSession.from_record(data, action_types or DEFAULT_ACTION_TYPES)
    logger.info(f"📂 Match record loaded: {path} ({len(session.ledger)} actions)")
    return session
