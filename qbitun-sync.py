#!/usr/bin/env python3
"""Run qbitun from a source checkout without installing it."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from qbitun.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
