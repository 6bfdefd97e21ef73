"""
Campo CLI - Main entry point.

Sends control-plane commands to a running match session service.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .mqtt_client import MQTTCommandClient

# Status replies that mean the command was rejected
ERROR_REPLIES = {
    "action_not_found", "invalid_team", "invalid_player", "invalid_selection",
    "export_failed", "match_error", "invalid_command", "unknown_command", "command_failed",
}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load YAML command payload file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"{config_path} must contain a mapping")
    return config


def parse_zone(value: str) -> List[int]:
    """"row,col" (0-based) -> [row, col]"""
    try:
        row, col = (int(part) for part in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Zone must look like 'row,col', got {value!r}")
    return [row, col]


def send_command(
    command: Dict[str, Any],
    match_id: str = "match_01",
    broker: str = "localhost",
    port: int = 1883,
    wait: bool = False,
    timeout: float = 5.0
) -> Optional[Dict[str, Any]]:
    """
    Send command to the match session service via MQTT.

    With wait=True, returns the service's status reply.
    """
    command_topic = f"campo/control/{match_id}/commands"
    client = MQTTCommandClient(broker=broker, port=port)

    if wait:
        status_topic = f"campo/control/{match_id}/status"
        return client.request(command_topic, status_topic, command, timeout=timeout)

    client.send_command(command_topic, command, qos=1, timeout=timeout)
    return None


def build_command(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """Translate parsed arguments into a command payload."""
    if args.command == 'play-pause':
        return {'command': 'toggle_play_pause'}

    if args.command == 'reset-timer':
        return {'command': 'reset_timer'}

    if args.command == 'possession':
        command = {'command': 'set_possession', 'team_id': args.team_id, 'record': not args.no_record}
        if args.zone is not None:
            command['zone'] = args.zone
        return command

    if args.command == 'record':
        command = {
            'command': 'record_action',
            'action_name': args.action_name,
            'team_id': args.team_id,
            'zone': args.zone,
            'player_ids': args.players or [],
        }
        if args.timestamp is not None:
            command['timestamp'] = args.timestamp
        return command

    if args.command == 'edit':
        if args.config:
            patch = load_yaml_config(args.config)
        else:
            patch = {}
        if args.action_name is not None:
            patch['action_name'] = args.action_name
        if args.team_id is not None:
            patch['team_id'] = args.team_id
        if args.player is not None:
            patch['player_id'] = args.player
        if args.zone is not None:
            patch['zone'] = args.zone
        if args.timestamp is not None:
            patch['timestamp'] = args.timestamp
        if not patch:
            raise ValueError("Nothing to edit: pass at least one field")
        return {'command': 'update_action', 'action_id': args.action_id, 'patch': patch}

    if args.command == 'remove':
        return {'command': 'remove_action', 'action_id': args.action_id}

    if args.command == 'list-actions':
        command = {'command': 'list_actions', 'order': 'timestamp_desc' if args.recent else 'insertion'}
        if args.limit is not None:
            command['limit'] = args.limit
        return command

    if args.command == 'heat-map':
        command = {'command': 'get_heat_map'}
        if args.select:
            command['selected_names'] = args.select
        return command

    if args.command == 'filter':
        return {'command': 'set_display_filter', 'names': None if args.clear else args.names}

    if args.command == 'export':
        command = {'command': 'export_heat_map'}
        if args.select:
            command['selected_names'] = args.select
        return command

    if args.command == 'cancel-export':
        return {'command': 'cancel_export'}

    if args.command == 'status':
        return {'command': 'status'}

    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Campo CLI - Send MQTT commands to a match session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clock
  campo-cli play-pause
  campo-cli reset-timer

  # Print the service reply (exit code 2 when rejected)
  campo-cli --wait status

  # Possession (zone is row,col on the 5x5 grid)
  campo-cli possession fla --zone 2,1

  # Record an action
  campo-cli record Chute fla 1,4 --players fla_9
  campo-cli record "Substituição" flu 2,2 --players flu_7 flu_17

  # Edit / remove
  campo-cli edit 3f2a9c --zone 1,3 --timestamp 754
  campo-cli remove 3f2a9c

  # Heat map
  campo-cli heat-map --select Chute "Posse de Bola"
  campo-cli filter Chute Falta
  campo-cli export --select Chute
"""
    )

    parser.add_argument(
        "--match-id",
        default="match_01",
        help="Target match ID (default: match_01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the service's status reply and print it"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for the broker / reply (default: 5)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('play-pause', help='Start/pause the match clock')
    subparsers.add_parser('reset-timer', help='Reset the match clock to 00:00')

    possession = subparsers.add_parser('possession', help='Change ball possession')
    possession.add_argument('team_id', help='Team gaining possession')
    possession.add_argument('--zone', type=parse_zone, help='Zone as row,col (default: last zone)')
    possession.add_argument('--no-record', action='store_true', help='Change holder without logging')

    record = subparsers.add_parser('record', help='Record a named action')
    record.add_argument('action_name', help='Action type name')
    record.add_argument('team_id', help='Acting team')
    record.add_argument('zone', type=parse_zone, help='Zone as row,col')
    record.add_argument('--players', nargs='+', help='Player ids (primary first)')
    record.add_argument('--timestamp', type=int, help='Match seconds (default: current clock)')

    edit = subparsers.add_parser('edit', help='Edit a recorded action')
    edit.add_argument('action_id', help='Action to edit')
    edit.add_argument('--config', help='YAML file with patch fields')
    edit.add_argument('--action-name')
    edit.add_argument('--team-id')
    edit.add_argument('--player')
    edit.add_argument('--zone', type=parse_zone)
    edit.add_argument('--timestamp', type=int)

    remove = subparsers.add_parser('remove', help='Delete a recorded action')
    remove.add_argument('action_id', help='Action to delete')

    list_actions = subparsers.add_parser('list-actions', help='List recorded actions')
    list_actions.add_argument('--recent', action='store_true', help='Most recent first')
    list_actions.add_argument('--limit', type=int)

    heat_map = subparsers.add_parser('heat-map', help='Publish the current heat map')
    heat_map.add_argument('--select', nargs='+', help='Action names to include')

    display_filter = subparsers.add_parser('filter', help='Filter the live heat map')
    display_filter.add_argument('names', nargs='*', help='Action names to show')
    display_filter.add_argument('--clear', action='store_true', help='Show everything')

    export = subparsers.add_parser('export', help='Export a heat-map PNG on the service host')
    export.add_argument('--select', nargs='+', help='Action names to include (default: all)')

    subparsers.add_parser('cancel-export', help='Cancel the running export')
    subparsers.add_parser('status', help='Query session status')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        reply = send_command(command, args.match_id, args.broker, args.port,
                             wait=args.wait, timeout=args.timeout)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✅ Command sent: {command['command']}")
    if reply is not None:
        print(json.dumps(reply, ensure_ascii=False, indent=2))
        if reply.get('status') in ERROR_REPLIES:
            sys.exit(2)


if __name__ == '__main__':
    main()
