#!/usr/bin/env python
"""
Command-line interface for the proxima installation.

Examples:
    # Run with default settings (camera 0, sound off until SPACE)
    python proxima_cli.py

    # Second camera, bigger window, sound on from the start
    python proxima_cli.py --camera 1 --display-scale 1.5 --sound-at-start

    # Fill a 1280x720 window and show proximity, complexity and volume
    python proxima_cli.py --canvas-size 1280x720 --show-features

    # See what the proximity engine and the sound gate are doing
    python proxima_cli.py --log-level DEBUG
"""

import argh
from proxima.script_utils import proxima_cli


if __name__ == "__main__":
    argh.dispatch_command(proxima_cli)
