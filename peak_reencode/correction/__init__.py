"""Defect classification and per-record correction."""
from __future__ import annotations
