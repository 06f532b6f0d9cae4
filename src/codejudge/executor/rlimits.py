from __future__ import annotations
import resource
from typing import Optional


def apply_rlimits(cpu_seconds: int, memory_bytes: Optional[int], nofile: int) -> None:
    """
    Process-level caps: CPU time, address space, open file descriptors.
    A limit the OS refuses is left at its default.
    """
    try:
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
    except (ValueError, OSError):
        pass
    if memory_bytes:
        try:
            resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
        except (ValueError, OSError):
            pass
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (nofile, nofile))
    except (ValueError, OSError):
        pass
