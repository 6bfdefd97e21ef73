"""
Heat Map Export
===============

Bounded Context: One-shot heat-map image of a selected subset of actions.

Design:
- Selection is by display name; POSSESSION_LABEL selects possession entries
- Same aggregation as the live view (campo_zone.aggregate)
- HeatMapExportJob works on an immutable snapshot taken at construction,
  so later ledger edits never leak into an in-flight export
- Render + rasterize run on a background thread; cancel() discards the result
- Failures surface as ExportError from result() and never touch the ledger

Known limitation:
    Selection is by name. Two action types sharing a display name cannot be
    exported separately.
"""

import re
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Iterable, List, Optional, Sequence, Tuple

from campo_zone.analytics.aggregation import aggregate, team_action_counts
from campo_zone.analytics.counter import HeatGrid
from campo_zone.rendering.visualizer import HeatMapVisualizer, TeamLegend

from .errors import ExportError
from .logging import LogEvent, create_logger
from .models import POSSESSION_LABEL, ActionKind, GameAction, Team, is_selected


@dataclass(frozen=True)
class ExportProjection:
    """Filtered actions plus their aggregated grid."""
    actions: Tuple[GameAction, ...]
    grid: HeatGrid


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a finished export job."""
    path: Path
    included_names: Tuple[str, ...]
    action_count: int
    grid: HeatGrid

    def to_dict(self) -> dict:
        return {
            'path': str(self.path),
            'included_names': list(self.included_names),
            'action_count': self.action_count,
            'max_total': self.grid.max_total,
        }


def project_for_export(
    actions: Iterable[GameAction],
    selected_names: Collection[str],
    team_a_id: str,
    team_b_id: str,
) -> ExportProjection:
    """
    Keep the selected actions and aggregate them.

    Example:
        >>> projection = project_for_export(ledger, {"Chute", POSSESSION_LABEL}, "fla", "flu")
        >>> projection.grid.max_total
    """
    names = frozenset(selected_names)
    kept = tuple(a for a in actions if is_selected(a, names))
    return ExportProjection(actions=kept, grid=aggregate(kept, team_a_id, team_b_id))


def selectable_action_names(actions: Iterable[GameAction]) -> List[Tuple[str, int]]:
    """
    Checkbox list for the export dialog: [(name, count)].

    The possession label always comes first, followed by each action name
    in first-seen order.
    """
    possession = 0
    counts = {}
    for action in actions:
        if action.kind == ActionKind.POSSESSION:
            possession += 1
        elif action.action_name:
            counts[action.action_name] = counts.get(action.action_name, 0) + 1
    return [(POSSESSION_LABEL, possession)] + list(counts.items())


def select_all(actions: Iterable[GameAction]) -> List[str]:
    """Every selectable name (what "select all" ticks)."""
    return [name for name, _ in selectable_action_names(actions)]


def export_filename(team_a: Team, team_b: Team) -> str:
    """mapa_calor_<A>_vs_<B>.png with whitespace replaced by underscores."""
    name_a = re.sub(r"\s", "_", team_a.name)
    name_b = re.sub(r"\s", "_", team_b.name)
    return f"mapa_calor_{name_a}_vs_{name_b}.png"


class HeatMapExportJob:
    """
    Background export of one heat-map image.

    Usage:
        job = HeatMapExportJob.from_session(session, ["Chute"], Path("exports"))
        job.start()
        result = job.result(timeout=30)   # ExportResult or ExportError
    """

    def __init__(
        self,
        actions: Sequence[GameAction],
        selected_names: Collection[str],
        team_a: Team,
        team_b: Team,
        output_dir: Path,
        visualizer: Optional[HeatMapVisualizer] = None,
        filename: Optional[str] = None,
    ):
        """
        Args:
            actions: Ledger contents; copied immediately
            selected_names: Names to include (must not be empty)
            team_a: First team
            team_b: Second team
            output_dir: Directory for the PNG
            visualizer: Renderer (default: 800x600 at scale 2)
            filename: Override for export_filename()

        Raises:
            ValueError: Empty selection
        """
        names = tuple(dict.fromkeys(selected_names))
        if not names:
            raise ValueError("Select at least one action to export")

        self.snapshot: Tuple[GameAction, ...] = tuple(actions)
        self.selected_names = names
        self.team_a = team_a
        self.team_b = team_b
        self.output_path = Path(output_dir) / (filename or export_filename(team_a, team_b))
        self.visualizer = visualizer or HeatMapVisualizer()
        self.logger = create_logger("export")

        self._thread: Optional[threading.Thread] = None
        self._done = threading.Event()
        self._cancelled = threading.Event()
        self._result: Optional[ExportResult] = None
        self._error: Optional[BaseException] = None

    @classmethod
    def from_session(cls, session, selected_names: Collection[str], output_dir: Path,
                     visualizer: Optional[HeatMapVisualizer] = None) -> 'HeatMapExportJob':
        """Snapshot a MatchSession's ledger and teams."""
        return cls(
            actions=session.snapshot(),
            selected_names=selected_names,
            team_a=session.team_a,
            team_b=session.team_b,
            output_dir=output_dir,
            visualizer=visualizer,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> 'HeatMapExportJob':
        if self._thread is not None:
            raise RuntimeError("Export job already started")
        self._thread = threading.Thread(target=self._run, name="HeatMapExportThread", daemon=True)
        self._thread.start()
        return self

    def run(self) -> ExportResult:
        """Run synchronously on the calling thread."""
        self._run()
        return self.result()

    def cancel(self) -> None:
        """Discard the in-flight result. An earlier export at output_path is left in place."""
        self._cancelled.set()
        self.logger.info(
            event=LogEvent.EXPORT_CANCELLED,
            message="Export cancelled",
            metadata={'path': str(self.output_path)},
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def done(self) -> bool:
        return self._done.is_set()

    def result(self, timeout: Optional[float] = None) -> ExportResult:
        """
        Wait for the job and return its result.

        Raises:
            ExportError: Job failed, was cancelled, or timed out
        """
        if self._cancelled.is_set():
            raise ExportError("Export cancelled")
        if not self._done.wait(timeout):
            raise ExportError(f"Export did not finish within {timeout}s")
        if self._cancelled.is_set():
            raise ExportError("Export cancelled")
        if self._error is not None:
            raise ExportError(f"Export failed: {self._error}") from self._error
        return self._result

    # ─────────────────────────────────────────────────────────────────────
    # Worker
    # ─────────────────────────────────────────────────────────────────────

    def _run(self) -> None:
        self.logger.info(
            event=LogEvent.EXPORT_STARTED,
            message="Export started",
            metadata={'selected': list(self.selected_names), 'snapshot_size': len(self.snapshot)},
        )
        try:
            projection = project_for_export(
                self.snapshot, self.selected_names, self.team_a.id, self.team_b.id
            )
            if self._cancelled.is_set():
                return

            counts = team_action_counts(self.snapshot, self.team_a.id, self.team_b.id)
            canvas = self.visualizer.render(
                projection.grid,
                title=f"Mapa de Calor - {self.team_a.name} vs {self.team_b.name}",
                team_a=TeamLegend(self.team_a.name, self.team_a.color, counts[self.team_a.id]),
                team_b=TeamLegend(self.team_b.name, self.team_b.color, counts[self.team_b.id]),
                included=self.selected_names,
            )
            if self._cancelled.is_set():
                return

            # OpenCV picks the encoder from the suffix, so the partial file keeps .png
            partial = self.output_path.with_name(
                f"{self.output_path.stem}.{uuid.uuid4().hex[:8]}.partial{self.output_path.suffix}"
            )
            written = self.visualizer.rasterize(canvas, partial)
            if self._cancelled.is_set():
                written.unlink(missing_ok=True)
                return
            path = written.replace(self.output_path)

            self._result = ExportResult(
                path=path,
                included_names=self.selected_names,
                action_count=len(projection.actions),
                grid=projection.grid,
            )
            self.logger.info(
                event=LogEvent.EXPORT_COMPLETED,
                message=f"Heat map exported to {path}",
                metadata=self._result.to_dict(),
            )
        except Exception as e:
            self._error = e
            self.logger.error(
                event=LogEvent.EXPORT_FAILED,
                message="Heat map export failed",
                metadata={'path': str(self.output_path)},
                exc_info=e,
            )
        finally:
            self._done.set()
