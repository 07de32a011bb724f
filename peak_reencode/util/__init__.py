"""Shared helpers: logging setup and process exit codes."""
from __future__ import annotations
