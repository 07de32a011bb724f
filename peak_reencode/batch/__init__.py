"""Directory/file batch driver."""
from __future__ import annotations
