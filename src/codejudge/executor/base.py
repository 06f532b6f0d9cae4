from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

# tells the sandbox whether stdin carries a leading test-case count
MODE_ENV = "EXECUTION_TYPE"


@dataclass
class SandboxSpec:
    name: str
    image: str
    workdir: Path          # host side of the read/write mount
    mount_point: str       # sandbox side of the mount
    memory_mb: int         # hard cap, swap capped to the same value
    time_limit_s: float    # self-enforced inside the sandbox
    network: bool = False
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class SandboxExit:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    def killed_by_backend(self, oom_exit_code: int) -> bool:
        return self.exit_code == oom_exit_code


class Sandbox(ABC):
    """Isolation backend contract.

    Backends must keep the sandbox off the network, cap memory with no
    swap headroom, share `workdir` read/write, and report a backend kill
    through the OOM exit code.
    """

    @abstractmethod
    def create(self, spec: SandboxSpec) -> None:
        """Raises SandboxCreateFailed."""

    @abstractmethod
    def start(self, name: str) -> SandboxExit:
        """Block until the sandbox exits or is killed by the backend."""

    @abstractmethod
    def destroy(self, name: str) -> None:
        """Raises SandboxDestroyFailed."""

    def check_health(self) -> Tuple[bool, str]:
        """Return (healthy, detail) for the backend."""
        return True, f"{type(self).__name__} ready"
