#!/usr/bin/env python3
"""
Match Session Service - Entry Point
===================================

This script starts the Campo match session service, which:
- Keeps the match clock and ball possession
- Records actions (possession changes and named actions) per pitch zone
- Publishes live heat maps and ledger changes to MQTT
- Responds to control commands via MQTT control plane
- Exports heat-map PNGs on request

Usage:
    python run_match_session.py --config config/match_config.yaml

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Restore the saved match record (if record_path exists)
    4. Create control plane and publishers
    5. Create MatchSessionService
    6. Start service (non-blocking)
    7. Wait for stop signal (Ctrl+C or SIGTERM)
    8. Graceful shutdown (record is saved)

Logs:
    - Console: INFO level
    - File: logs/match.log (INFO level)
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from campo_control import MQTTControlPlane
from campo_match import MatchConfig, MatchSession, load_match_record
from campo_match.logging import create_logger
from campo_match.service import MatchSessionService
from campo_mqtt import ActionEventPublisher, HeatMapPublisher


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """Setup console (and optional file) logging."""
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class MatchApp:
    """
    Application wrapper for MatchSessionService.

    Handles configuration loading, component wiring, signals and shutdown.
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None):
        self.config_path = config_path
        self.log_file = log_file
        self.logger = setup_logging(log_file)

        self.config: Optional[MatchConfig] = None
        self.session: Optional[MatchSession] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.heat_map_publisher: Optional[HeatMapPublisher] = None
        self.action_event_publisher: Optional[ActionEventPublisher] = None
        self.service: Optional[MatchSessionService] = None

        self._shutdown_requested = False

    def setup(self):
        self.logger.info("=" * 80)
        self.logger.info("🚀 Campo Match Session - Starting")
        self.logger.info("=" * 80)

        # 1. Configuration
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = MatchConfig.from_yaml(self.config_path)
        self.logger.info(f"✅ Configuration loaded (match_id={self.config.match_id})")

        # 2. Session (fresh or restored)
        self.session = self._create_session()

        mqtt = self.config.mqtt_config
        match_id = self.config.match_id
        mqtt_logger = create_logger(component="mqtt_publisher", match_id=match_id)

        # 3. Control plane
        self.logger.info("🔌 Creating MQTT control plane")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            command_topic=self.config.topic(mqtt.command_topic),
            status_topic=self.config.topic(mqtt.status_topic),
            client_id=f"match_{match_id}",
            username=mqtt.username,
            password=mqtt.password,
        )

        # 4. Publishers
        self.logger.info("📤 Creating MQTT publishers")
        heat_map_topic = self.config.topic(mqtt.heat_map_topic)
        action_event_topic = self.config.topic(mqtt.action_event_topic)

        self.heat_map_publisher = HeatMapPublisher(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            topic=heat_map_topic,
            logger=mqtt_logger,
            client_id=f"publisher_heat_map_{match_id}",
            username=mqtt.username,
            password=mqtt.password,
            qos=mqtt.qos,
        )
        self.action_event_publisher = ActionEventPublisher(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            topic=action_event_topic,
            logger=mqtt_logger,
            client_id=f"publisher_actions_{match_id}",
            username=mqtt.username,
            password=mqtt.password,
            qos=mqtt.qos,
        )
        self.logger.info(f"  - Heat map topic: {heat_map_topic}")
        self.logger.info(f"  - Action event topic: {action_event_topic}")

        # 5. Service
        self.service = MatchSessionService(
            config=self.config,
            session=self.session,
            control_plane=self.control_plane,
            heat_map_publisher=self.heat_map_publisher,
            action_event_publisher=self.action_event_publisher,
        )
        self.service.setup()
        self.logger.info("✅ Service created")
        self.logger.info("=" * 80)

    def _create_session(self) -> MatchSession:
        action_types = self.config.resolved_action_types()
        record_path = self.config.record_path

        if record_path is not None and record_path.exists():
            self.logger.info(f"📂 Restoring match record: {record_path}")
            session = load_match_record(record_path, action_types)
            if session.match_id != self.config.match_id:
                raise ValueError(
                    f"Record {record_path} belongs to match '{session.match_id}', "
                    f"not '{self.config.match_id}'"
                )
            return session

        team_a, team_b = self.config.teams()
        return MatchSession(
            match_id=self.config.match_id,
            team_a=team_a,
            team_b=team_b,
            action_types=action_types,
        )

    def run(self):
        """Run the service; blocks until shutdown."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()

            self.logger.info("✅ Service started successfully")
            self.logger.info("Press Ctrl+C to stop")
            self.logger.info("=" * 80)

            self.service.wait()

        except KeyboardInterrupt:
            self.logger.info("\n⚠️  KeyboardInterrupt received")
            self.shutdown()

        except Exception as e:
            self.logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True

        self.logger.info("=" * 80)
        self.logger.info("🛑 Shutting down match session service")
        self.logger.info("=" * 80)

        # service.stop() also disconnects the control plane
        if self.service:
            try:
                self.service.stop()
                self.logger.info("✅ Service stopped")
            except Exception as e:
                self.logger.error(f"❌ Error stopping service: {e}")

        self.logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"\n⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
        sys.exit(0)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    parser = argparse.ArgumentParser(
        description="Campo Match Session - live match tracking over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with default config
  python run_match_session.py --config config/match_config.yaml

  # Console logging only
  python run_match_session.py --config config/match_config.yaml --no-log-file

Then drive it with campo-cli (see campo-cli --help).
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to match configuration YAML file'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/match.log'),
        help='Path to log file (default: logs/match.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    return parser.parse_args()


def main():
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = MatchApp(config_path=args.config, log_file=log_file)

    try:
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
