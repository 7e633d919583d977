#!/usr/bin/env python3
"""Run the VibrationVIEW GUS adapter."""

import sys
from vibrationview_gus.main import main

if __name__ == "__main__":
    sys.exit(main())
