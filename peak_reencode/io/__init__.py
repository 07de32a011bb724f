"""
Recording I/O for peak-reencode.

- proto: field-level wire codec used by envelope and reading payloads
- envelope: container framing and envelope encode/decode
- messages: reading kinds, message-set IDs and payload dataclasses
- recording: sequential/ordered readers, writer and byte copy
"""
from __future__ import annotations
