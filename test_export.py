"""
Tests for heat-map export (campo_match.export + campo_zone rendering).

Usage:
    pytest test_export.py -v
"""

import threading

import numpy as np
import pytest

from campo_match import (
    POSSESSION_LABEL,
    ExportError,
    HeatMapExportJob,
    Team,
    export_filename,
    project_for_export,
    select_all,
    selectable_action_names,
)
from campo_zone import HeatMapVisualizer, TeamLegend, Zone


@pytest.fixture
def small_visualizer():
    return HeatMapVisualizer(scale=1)


@pytest.fixture
def played(session):
    session.change_possession("fla", Zone(2, 2))
    session.record_action("Chute", "fla", Zone(0, 4), player_ids=["fla_9"])
    session.record_action("Falta", "flu", Zone(3, 1))
    session.change_possession("flu", Zone(3, 1))
    session.record_action("Chute", "flu", Zone(4, 0), player_ids=["flu_7"])
    return session


def test_projection_keeps_only_selected(played):
    projection = project_for_export(played.snapshot(), {"Chute"}, "fla", "flu")
    assert {a.action_name for a in projection.actions} == {"Chute"}
    assert projection.grid.total == 2

    with_possession = project_for_export(played.snapshot(), {"Chute", POSSESSION_LABEL}, "fla", "flu")
    assert with_possession.grid.total == 4
    assert with_possession.grid.at(Zone(3, 1)).team_b == 1


def test_selectable_names(played):
    assert selectable_action_names(played.snapshot()) == [
        (POSSESSION_LABEL, 2),
        ("Chute", 2),
        ("Falta", 1),
    ]
    assert select_all(played.snapshot()) == [POSSESSION_LABEL, "Chute", "Falta"]
    assert selectable_action_names([]) == [(POSSESSION_LABEL, 0)]


def test_export_filename():
    a = Team(id="a", name="São Paulo FC")
    b = Team(id="b", name="Red\tBull")
    assert export_filename(a, b) == "mapa_calor_São_Paulo_FC_vs_Red_Bull.png"


def test_empty_selection_rejected(played, tmp_path):
    with pytest.raises(ValueError):
        HeatMapExportJob.from_session(played, [], tmp_path)


def test_export_writes_png(played, tmp_path, small_visualizer):
    job = HeatMapExportJob.from_session(played, ["Chute"], tmp_path, visualizer=small_visualizer)
    result = job.run()

    assert result.path == tmp_path / "mapa_calor_Flamengo_vs_Fluminense.png"
    assert result.path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    assert result.action_count == 2
    assert result.included_names == ("Chute",)
    assert result.to_dict()['max_total'] == 1


def test_snapshot_isolation(played, tmp_path, small_visualizer):
    job = HeatMapExportJob.from_session(played, ["Chute"], tmp_path, visualizer=small_visualizer)
    for action in played.snapshot():
        played.remove_action(action.id)
    played.record_action("Chute", "fla", Zone(1, 1))

    result = job.run()
    assert result.action_count == 2
    assert result.grid.at(Zone(1, 1)).total == 0


def test_render_dimensions(played, small_visualizer):
    grid = played.heat_grid()
    canvas = small_visualizer.render(
        grid,
        title="Mapa de Calor",
        team_a=TeamLegend(played.team_a.name, played.team_a.color, 3),
        team_b=TeamLegend(played.team_b.name, played.team_b.color, 3),
        included=["Chute"],
    )
    assert isinstance(canvas, np.ndarray)
    assert canvas.shape[:2] == (600, 800)


def test_write_failure_surfaces_and_keeps_ledger(played, tmp_path, small_visualizer, monkeypatch):
    monkeypatch.setattr("campo_zone.rendering.visualizer.cv2.imwrite", lambda *args, **kwargs: False)
    before = played.snapshot()

    job = HeatMapExportJob.from_session(played, ["Chute"], tmp_path, visualizer=small_visualizer)
    with pytest.raises(ExportError):
        job.run()

    assert played.snapshot() == before
    assert not job.output_path.exists()
    assert list(tmp_path.iterdir()) == []


def test_cancel_before_start(played, tmp_path):
    job = HeatMapExportJob.from_session(played, ["Chute"], tmp_path)
    job.cancel()
    assert job.cancelled
    with pytest.raises(ExportError):
        job.result(timeout=0.1)


class BlockingVisualizer(HeatMapVisualizer):
    """Render blocks until released, so the job can be cancelled mid-flight."""

    def __init__(self):
        super().__init__(scale=1)
        self.entered = threading.Event()
        self.release = threading.Event()

    def render(self, *args, **kwargs):
        self.entered.set()
        self.release.wait(5)
        return super().render(*args, **kwargs)


def test_cancel_in_flight_discards_result(played, tmp_path):
    visualizer = BlockingVisualizer()
    job = HeatMapExportJob.from_session(played, ["Chute"], tmp_path, visualizer=visualizer)
    job.start()

    assert visualizer.entered.wait(5)
    job.cancel()
    visualizer.release.set()

    with pytest.raises(ExportError):
        job.result(timeout=5)
    job._done.wait(5)
    assert job.done()
    assert not job.output_path.exists()


class CancelAfterWriteVisualizer(HeatMapVisualizer):
    """Cancels its job right after the PNG is written."""

    def __init__(self):
        super().__init__(scale=1)
        self.job = None

    def rasterize(self, canvas, output_path):
        path = super().rasterize(canvas, output_path)
        self.job.cancel()
        return path


def test_cancelled_reexport_keeps_previous_file(played, tmp_path, small_visualizer):
    first = HeatMapExportJob.from_session(played, ["Chute"], tmp_path, visualizer=small_visualizer).run()
    first_bytes = first.path.read_bytes()

    visualizer = CancelAfterWriteVisualizer()
    second = HeatMapExportJob.from_session(played, [POSSESSION_LABEL], tmp_path, visualizer=visualizer)
    visualizer.job = second
    with pytest.raises(ExportError):
        second.run()

    assert second.output_path == first.path
    assert first.path.read_bytes() == first_bytes
    assert sorted(p.name for p in tmp_path.iterdir()) == [first.path.name]


def test_possession_only_selection(session):
    session.change_possession("fla", Zone(2, 2))
    session.record_action("Chute", "fla", Zone(0, 4))
    session.record_action("Chute", "fla", Zone(0, 3))

    projection = project_for_export(session.snapshot(), {POSSESSION_LABEL}, "fla", "flu")
    assert [a.kind.value for a in projection.actions] == ["possession"]
    assert projection.grid.total == 1
    assert projection.grid.at(Zone(2, 2)).team_a == 1
