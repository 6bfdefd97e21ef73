"""
Campo Match Session
===================

Bounded Context: Live logging of a match between two teams.

Architecture:

    campo_match/
    ├── models.py     # Team, Player, GameAction, ActionType (immutable)
    ├── ledger.py     # ActionLedger (ordered, id-addressable)
    ├── session.py    # MatchSession (clock, possession, ledger, filter)
    ├── clock.py      # MatchClock (ticks while Playing)
    ├── export.py     # Export projection + HeatMapExportJob
    ├── record.py     # JSON persistence
    ├── config.py     # MatchConfig.from_yaml
    ├── service.py    # MatchSessionService (MQTT orchestration)
    ├── errors.py     # MatchError taxonomy
    └── logging/      # Structured JSON logging

Usage:

    from campo_match import MatchSession, Team, Player
    from campo_zone import Zone

    session = MatchSession("final", team_a, team_b)
    session.change_possession("fla", Zone(2, 1))
    session.record_action("Chute", "fla", Zone(1, 4), player_ids=["fla_9"])
    session.heat_grid().max_total

The MQTT service is imported explicitly:

    from campo_match.service import MatchSessionService
"""

from .errors import (
    ActionNotFoundError,
    ExportError,
    InvalidPlayerReferenceError,
    InvalidSelectionError,
    InvalidTeamReferenceError,
    MatchError,
)
from .models import (
    DEFAULT_ACTION_TYPES,
    POSSESSION_LABEL,
    ActionKind,
    ActionType,
    GameAction,
    Player,
    Team,
)
from .ledger import ActionLedger, LedgerOrder
from .export import (
    ExportProjection,
    ExportResult,
    HeatMapExportJob,
    export_filename,
    project_for_export,
    select_all,
    selectable_action_names,
)
from .session import ChangeType, MatchSession, SessionChange
from .clock import MatchClock
from .record import load_match_record, save_match_record
from .config import MatchConfig

__all__ = [
    # Errors
    "MatchError",
    "ActionNotFoundError",
    "InvalidTeamReferenceError",
    "InvalidPlayerReferenceError",
    "InvalidSelectionError",
    "ExportError",
    # Models
    "ActionKind",
    "ActionType",
    "GameAction",
    "Player",
    "Team",
    "POSSESSION_LABEL",
    "DEFAULT_ACTION_TYPES",
    # Ledger / session
    "ActionLedger",
    "LedgerOrder",
    "MatchSession",
    "SessionChange",
    "ChangeType",
    "MatchClock",
    # Export
    "ExportProjection",
    "ExportResult",
    "HeatMapExportJob",
    "project_for_export",
    "selectable_action_names",
    "select_all",
    "export_filename",
    # Persistence / config
    "save_match_record",
    "load_match_record",
    "MatchConfig",
]

__version__ = "1.0.0"
