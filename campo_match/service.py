"""
Match Session Service - orchestrates a live match over MQTT.

This module provides the MatchSessionService class, which wires a
MatchSession to the match clock, the MQTT control plane (commands in,
status out) and the data plane (heat-map snapshots and ledger changes).

Threading Model:
- Match Clock Thread (MatchClock, advances current_time while Playing)
- Control Plane Thread (paho-mqtt internal, command handlers)
- Export Threads (one per export_heat_map command)
- Publisher network threads (paho-mqtt internal)

Session mutations are serialized by the session's own lock; heat maps are
re-aggregated and published from the session listener after each change.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from campo_mqtt.schemas import (
    SCHEMA_VERSION,
    ActionEventMessage,
    ChangeType as EventChangeType,
    HeatMapMessage,
    Timestamp,
)
from campo_zone.analytics.aggregation import format_clock
from campo_zone.rendering.visualizer import HeatMapVisualizer

from .clock import MatchClock
from .config import MatchConfig
from .errors import (
    ActionNotFoundError,
    ExportError,
    InvalidPlayerReferenceError,
    InvalidSelectionError,
    InvalidTeamReferenceError,
    MatchError,
)
from .export import HeatMapExportJob, select_all, selectable_action_names
from .ledger import LedgerOrder
from .record import save_match_record
from .session import ChangeType, MatchSession, SessionChange

logger = logging.getLogger(__name__)

# Status reported for each recoverable error
ERROR_STATUS = (
    (ActionNotFoundError, "action_not_found"),
    (InvalidTeamReferenceError, "invalid_team"),
    (InvalidPlayerReferenceError, "invalid_player"),
    (InvalidSelectionError, "invalid_selection"),
    (ExportError, "export_failed"),
)

_EVENT_CHANGE_TYPES = {
    ChangeType.ACTION_CREATED: EventChangeType.CREATED,
    ChangeType.ACTION_UPDATED: EventChangeType.UPDATED,
    ChangeType.ACTION_REMOVED: EventChangeType.REMOVED,
}


def list_field(command: Dict, key: str, default=None):
    """A list-valued payload field; a bare string is not a list of names."""
    value = command.get(key, default)
    if value is None or isinstance(value, (list, tuple)):
        return value
    raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")


def error_status(error: MatchError) -> str:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return "match_error"


class MatchSessionService:
    """
    Live match service.

    Usage:
        config = MatchConfig.from_yaml("config/match_config.yaml")
        session = MatchSession(config.match_id, *config.teams(),
                               action_types=config.resolved_action_types())
        service = MatchSessionService(
            config=config,
            session=session,
            control_plane=control_plane,
            heat_map_publisher=heat_map_publisher,
            action_event_publisher=action_event_publisher,
        )
        service.setup()
        service.start()
        service.wait()
    """

    def __init__(
        self,
        config: MatchConfig,
        session: MatchSession,
        control_plane,  # MQTTControlPlane
        heat_map_publisher=None,  # HeatMapPublisher
        action_event_publisher=None,  # ActionEventPublisher
        clock: Optional[MatchClock] = None,
    ):
        self.config = config
        self.session = session
        self.control_plane = control_plane
        self.heat_map_publisher = heat_map_publisher
        self.action_event_publisher = action_event_publisher
        self.clock = clock or MatchClock(session, tick_seconds=config.clock.tick_seconds)

        self.visualizer = HeatMapVisualizer(
            width=config.export.width,
            height=config.export.height,
            scale=config.export.scale,
            show_counts=config.export.show_counts,
        )

        self._export_lock = threading.Lock()
        self._export_job: Optional[HeatMapExportJob] = None
        self._unsubscribe = None

        self._running = False
        self._stop_event = threading.Event()

        logger.info(f"MatchSessionService initialized for match_id={session.match_id}")

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def setup(self):
        """Register command handlers and subscribe to session changes."""
        self._setup_control_handlers()
        self._unsubscribe = self.session.subscribe(self._on_session_change)
        logger.info("Service setup complete")

    def _setup_control_handlers(self):
        registry = self.control_plane.command_registry

        # Clock
        registry.register("toggle_play_pause", self._handle_toggle_play_pause, "Start/pause the match clock")
        registry.register("reset_timer", self._handle_reset_timer, "Reset the match clock to 00:00")

        # Ledger
        registry.register("set_possession", self._handle_set_possession, "Change ball possession")
        registry.register("record_action", self._handle_record_action, "Record a named action")
        registry.register("update_action", self._handle_update_action, "Edit a recorded action")
        registry.register("remove_action", self._handle_remove_action, "Delete a recorded action")
        registry.register("list_actions", self._handle_list_actions, "List recorded actions")

        # Heat map
        registry.register("get_heat_map", self._handle_get_heat_map, "Publish the current heat map")
        registry.register("set_display_filter", self._handle_set_display_filter, "Filter the live heat map")
        registry.register("export_heat_map", self._handle_export_heat_map, "Export a heat-map PNG")
        registry.register("cancel_export", self._handle_cancel_export, "Cancel the running export")

        registry.register("status", self._handle_status, "Report session status")

        logger.info(f"Control handlers registered ({registry.count()} commands)")

    def start(self):
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect publishers
        3. Start match clock
        4. Publish initial heat map
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting match session service")

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        for publisher in (self.heat_map_publisher, self.action_event_publisher):
            if publisher is not None:
                publisher.connect()

        self.clock.start()
        if self.config.clock.autostart and not self.session.is_playing:
            self.session.toggle_play_pause()

        self._running = True
        self._stop_event.clear()
        self.publish_heat_map()

        self.control_plane.publish_status("running", self.session.status())
        logger.info("✅ Match session service started")

    def wait(self):
        """Block until stop() is called."""
        if not self._running:
            logger.warning("Service not running")
            return
        self._stop_event.wait()

    def stop(self):
        """
        Stop the service gracefully.

        Lifecycle:
        1. Stop clock, cancel export
        2. Save match record (if configured)
        3. Disconnect publishers and control plane
        """
        if not self._running:
            logger.warning("Service not running")
            return

        logger.info("Stopping match session service")

        self.clock.stop()
        with self._export_lock:
            if self._export_job is not None and not self._export_job.done():
                self._export_job.cancel()

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        self.save_record()

        for publisher in (self.heat_map_publisher, self.action_event_publisher):
            if publisher is not None:
                publisher.disconnect()

        self.control_plane.publish_status("stopped", self.session.status())
        self.control_plane.disconnect()

        self._running = False
        self._stop_event.set()
        logger.info("✅ Match session service stopped")

    # ─────────────────────────────────────────────────────────────────────
    # Data plane
    # ─────────────────────────────────────────────────────────────────────

    def build_heat_map_message(self, selected_names=None) -> HeatMapMessage:
        grid = self.session.heat_grid(selected_names)
        names = selected_names if selected_names is not None else self.session.display_filter
        return HeatMapMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            match_id=self.session.match_id,
            match_time=self.session.current_time,
            team_a_id=self.session.team_a.id,
            team_b_id=self.session.team_b.id,
            grid=grid,
            selected_names=sorted(names) if names is not None else None,
        )

    def publish_heat_map(self, selected_names=None) -> bool:
        if self.heat_map_publisher is None:
            return False
        return self.heat_map_publisher.publish_heat_map(self.build_heat_map_message(selected_names))

    def save_record(self) -> Optional[Path]:
        if self.config.record_path is None:
            return None
        try:
            return save_match_record(self.config.record_path, self.session)
        except OSError as e:
            logger.error(f"❌ Failed to save match record: {e}")
            return None

    def _on_session_change(self, change: SessionChange) -> None:
        """Session listener (runs on whichever thread mutated the session)."""
        event_type = _EVENT_CHANGE_TYPES.get(change.change_type)
        if event_type is not None and self.action_event_publisher is not None:
            self.action_event_publisher.publish_action_event(ActionEventMessage(
                schema_version=SCHEMA_VERSION,
                timestamp=Timestamp.now(),
                match_id=self.session.match_id,
                change_type=event_type,
                action=change.action,
                ledger_size=len(self.session.ledger),
            ))

        if change.affects_heat_map:
            self.publish_heat_map()

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _report(self, command: str, error: Exception) -> None:
        if isinstance(error, MatchError):
            status = error_status(error)
        else:
            status = "invalid_command"
        logger.warning(f"⚠️ Command '{command}' rejected: {error}")
        self.control_plane.publish_status(status, {"command": command, "error": str(error)})

    def _handle_toggle_play_pause(self, command: Dict):
        playing = self.session.toggle_play_pause()
        self.control_plane.publish_status(
            "playing" if playing else "paused",
            {"current_time": self.session.current_time},
        )

    def _handle_reset_timer(self, command: Dict):
        self.session.reset_timer()
        self.control_plane.publish_status("timer_reset", {"current_time": 0})

    def _handle_set_possession(self, command: Dict):
        """Payload: {team_id, zone?: [row, col], record?: bool (default true)}"""
        try:
            team_id = command["team_id"]
            if command.get("record", True):
                action = self.session.change_possession(team_id, command.get("zone"))
                data = {"team_id": team_id, "action": action.to_dict()}
            else:
                self.session.set_possession(team_id)
                data = {"team_id": team_id}
        except (MatchError, KeyError, ValueError) as e:
            self._report("set_possession", e)
            return
        self.control_plane.publish_status("possession_changed", data)

    def _handle_record_action(self, command: Dict):
        """Payload: {action_name, team_id, zone, player_ids?, timestamp?}"""
        try:
            action = self.session.record_action(
                action_name=command["action_name"],
                team_id=command["team_id"],
                zone=command["zone"],
                player_ids=list_field(command, "player_ids", ()),
                timestamp=command.get("timestamp"),
            )
        except (MatchError, KeyError, ValueError, TypeError) as e:
            self._report("record_action", e)
            return
        self.control_plane.publish_status("action_recorded", action.to_dict())

    def _handle_update_action(self, command: Dict):
        """Payload: {action_id, patch: {field: value}}"""
        try:
            action = self.session.update_action(command["action_id"], command.get("patch", {}))
        except (MatchError, KeyError, ValueError, TypeError) as e:
            self._report("update_action", e)
            return
        self.control_plane.publish_status("action_updated", action.to_dict())

    def _handle_remove_action(self, command: Dict):
        """Payload: {action_id}"""
        try:
            action = self.session.remove_action(command["action_id"])
        except (MatchError, KeyError) as e:
            self._report("remove_action", e)
            return
        self.control_plane.publish_status("action_removed", {"action_id": action.id})

    def _handle_list_actions(self, command: Dict):
        """Payload: {order?: "insertion" | "timestamp_desc", limit?}"""
        try:
            order = LedgerOrder(command.get("order", LedgerOrder.INSERTION.value))
        except ValueError as e:
            self._report("list_actions", e)
            return

        actions = self.session.actions(order)
        limit = command.get("limit")
        if limit is not None:
            actions = actions[:int(limit)]

        self.control_plane.publish_status("actions_list", {
            "order": order.value,
            "count": len(actions),
            "actions": [
                {
                    **a.to_dict(),
                    "label": a.display_label,
                    "time": format_clock(a.timestamp),
                    "player_label": self.session.player_label(a.team_id, a.player_id),
                }
                for a in actions
            ],
        })

    def _handle_get_heat_map(self, command: Dict):
        """Payload: {selected_names?: [...]}"""
        try:
            selected = list_field(command, "selected_names")
        except ValueError as e:
            self._report("get_heat_map", e)
            return
        message = self.build_heat_map_message(selected)
        if self.heat_map_publisher is not None:
            self.heat_map_publisher.publish_heat_map(message)
        self.control_plane.publish_status("heat_map", message.to_dict())

    def _handle_set_display_filter(self, command: Dict):
        """Payload: {names: [...] | null}"""
        try:
            names = list_field(command, "names")
        except ValueError as e:
            self._report("set_display_filter", e)
            return
        self.session.set_display_filter(names)
        self.control_plane.publish_status(
            "display_filter", {"names": sorted(names) if names is not None else None}
        )

    def _handle_export_heat_map(self, command: Dict):
        """Payload: {selected_names?: [...]} (default: everything selectable)"""
        try:
            selected = list_field(command, "selected_names")
        except ValueError as e:
            self._report("export_heat_map", e)
            return
        snapshot = self.session.snapshot()
        if selected is None:
            selected = select_all(snapshot)

        try:
            job = HeatMapExportJob(
                actions=snapshot,
                selected_names=selected,
                team_a=self.session.team_a,
                team_b=self.session.team_b,
                output_dir=self.config.export.output_dir,
                visualizer=self.visualizer,
            )
        except ValueError as e:
            self._report("export_heat_map", e)
            return

        with self._export_lock:
            if self._export_job is not None and not self._export_job.done():
                self._export_job.cancel()
            self._export_job = job

        job.start()
        threading.Thread(
            target=self._await_export,
            args=(job,),
            name="ExportWatcherThread",
            daemon=True,
        ).start()
        self.control_plane.publish_status("export_started", {
            "selected_names": list(job.selected_names),
            "available": [{"name": n, "count": c} for n, c in selectable_action_names(snapshot)],
        })

    def _await_export(self, job: HeatMapExportJob):
        try:
            result = job.result(timeout=self.config.export.timeout_seconds)
        except ExportError as e:
            if job.cancelled:
                self.control_plane.publish_status("export_cancelled", {"path": str(job.output_path)})
            else:
                self._report("export_heat_map", e)
            return
        self.control_plane.publish_status("export_completed", result.to_dict())

    def _handle_cancel_export(self, command: Dict):
        with self._export_lock:
            job = self._export_job
        if job is None or job.done():
            self.control_plane.publish_status("no_export_running")
            return
        job.cancel()

    def _handle_status(self, command: Dict):
        self.control_plane.publish_status("status", {
            **self.session.status(),
            "commands": sorted(self.control_plane.command_registry.available_commands),
        })
