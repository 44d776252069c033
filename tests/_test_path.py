"""Test helpers.

These tests assume your repo layout is:
  project_root/
    photo_sheet.py
    src/
      pixelsuite/
    tests/
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (SRC, ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))
