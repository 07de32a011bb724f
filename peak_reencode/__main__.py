"""Allow ``python -m peak_reencode``."""

from __future__ import annotations

import sys

from peak_reencode.cli import main

if __name__ == "__main__":
    sys.exit(main())
