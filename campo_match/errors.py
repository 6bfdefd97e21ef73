"""
Match error taxonomy.

None of these are fatal: callers recover locally (report and leave their own
state unchanged). Out-of-bounds zones are not an error at all; they are
silently excluded from aggregation.
"""


class MatchError(Exception):
    """Base class for recoverable match-session errors."""


class ActionNotFoundError(MatchError, KeyError):
    """Raised when update/remove references an action id not in the ledger."""

    def __init__(self, action_id: str):
        super().__init__(f"Action '{action_id}' not found")
        self.action_id = action_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidTeamReferenceError(MatchError, ValueError):
    """Raised when a team id is not one of the match's two teams."""

    def __init__(self, team_id: str, allowed: tuple = ()):
        message = f"Team '{team_id}' is not part of this match"
        if allowed:
            message += f" (expected one of: {', '.join(allowed)})"
        super().__init__(message)
        self.team_id = team_id


class InvalidPlayerReferenceError(MatchError, ValueError):
    """Raised when a player id does not belong to the action's team."""

    def __init__(self, player_id: str, team_id: str):
        super().__init__(f"Player '{player_id}' is not in the roster of team '{team_id}'")
        self.player_id = player_id
        self.team_id = team_id


class InvalidSelectionError(MatchError, ValueError):
    """Raised when a player selection breaks the action type's rule."""


class ExportError(MatchError):
    """Raised when a heat-map export fails; the ledger is never affected."""
