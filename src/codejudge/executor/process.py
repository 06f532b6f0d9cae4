from __future__ import annotations
import subprocess
from dataclasses import dataclass
from typing import List, Optional

MISSING_BINARY_EXIT = 127
TIMEOUT_EXIT = 124


@dataclass
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def run_process(argv: List[str], timeout: Optional[float] = None) -> ProcessResult:
    """
    Run a command to completion and describe how it ended.
    Non-zero exits, missing binaries and timeouts are all reported in the result, never raised.
    """
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        return ProcessResult(exit_code=MISSING_BINARY_EXIT, stdout="", stderr=str(e))
    except subprocess.TimeoutExpired as e:
        out = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
        err = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
        return ProcessResult(exit_code=TIMEOUT_EXIT, stdout=out, stderr=err, timed_out=True)

    return ProcessResult(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
