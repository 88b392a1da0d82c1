#!/usr/bin/env python3
"""
StreamSync launcher

Usage:
    python main.py                      # local HLS streams (see --serve)
    python main.py --preset remote      # public demo streams
    python main.py --simulate --duration 10
"""

import sys

from streamsync.app import main

if __name__ == "__main__":
    sys.exit(main())
