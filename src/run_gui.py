#!/usr/bin/env python3
"""Entry point for the PixelSuite desktop editor."""

import os
import sys

HERE = os.path.dirname(os.path.abspath(__file__))
if HERE not in sys.path:
    sys.path.insert(0, HERE)

from pixelsuite.ui.main_window import run

if __name__ == "__main__":
    run()
