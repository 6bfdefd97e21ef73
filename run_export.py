#!/usr/bin/env python3
"""
Offline heat-map export from a saved match record.

Usage:
    python run_export.py --record records/final.json
    python run_export.py --record records/final.json --names Chute "Posse de Bola"
    python run_export.py --record records/final.json --list

Without --output-dir the PNG lands in ./runs/export/<timestamp>/.
"""

import argparse
import logging
import sys
from pathlib import Path

from campo_match import (
    ExportError,
    HeatMapExportJob,
    load_match_record,
    select_all,
    selectable_action_names,
)
from campo_zone.rendering.visualizer import HeatMapVisualizer
from utils import get_target_run_folder

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Export a heat-map PNG from a match record")
    parser.add_argument('--record', type=Path, required=True, help='Saved match record (JSON)')
    parser.add_argument('--names', nargs='+', help='Action names to include (default: all)')
    parser.add_argument('--output-dir', type=Path, help='Output folder (default: runs/export/<timestamp>)')
    parser.add_argument('--list', action='store_true', help='List selectable action names and exit')
    parser.add_argument('--width', type=int, default=800)
    parser.add_argument('--height', type=int, default=600)
    parser.add_argument('--scale', type=int, default=2)
    parser.add_argument('--no-counts', action='store_true', help='Hide per-zone counts')
    return parser.parse_args()


def main():
    args = parse_args()

    try:
        session = load_match_record(args.record)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    snapshot = session.snapshot()

    if args.list:
        for name, count in selectable_action_names(snapshot):
            print(f"  {name:<20} {count}")
        return

    selected = args.names or select_all(snapshot)
    output_dir = args.output_dir or Path(get_target_run_folder("export"))

    visualizer = HeatMapVisualizer(
        width=args.width,
        height=args.height,
        scale=args.scale,
        show_counts=not args.no_counts,
    )

    try:
        job = HeatMapExportJob.from_session(session, selected, output_dir, visualizer=visualizer)
        result = job.run()
    except (ValueError, ExportError) as e:
        print(f"❌ Export failed: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(f"✅ {result.action_count} actions exported to {result.path}")


if __name__ == '__main__':
    main()
