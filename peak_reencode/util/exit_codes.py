"""Documented exit codes for the peak-reencode CLI.

Exit codes:
- 0: Success
- 1: Missing required options (usage printed)
- -1: Processing failure (path collision, unopenable file, corrupt recording)

A negative status is reported by the shell as 255 on POSIX systems.

Usage:
    from peak_reencode.util.exit_codes import ExitCode
    sys.exit(ExitCode.FAILURE)
"""

from __future__ import annotations


class ExitCode:
    """Exit code constants for peak-reencode processes.

    Attributes:
        SUCCESS: Every file was copied, reencoded or skipped.
        USAGE: --in or --out was not given.
        FAILURE: The run was aborted by the first failing file or a path collision.
    """

    SUCCESS: int = 0
    USAGE: int = 1
    FAILURE: int = -1
