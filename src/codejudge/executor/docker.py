from __future__ import annotations
from typing import Callable, List, Tuple

import structlog

from ..core.errors import SandboxCreateFailed, SandboxDestroyFailed
from .base import Sandbox, SandboxExit, SandboxSpec
from .process import ProcessResult, run_process

log = structlog.get_logger()


class DockerSandbox(Sandbox):
    """Sandbox backed by the docker CLI: one container per job, named after the job."""

    def __init__(self, docker_bin: str = "docker", run: Callable[[List[str]], ProcessResult] = run_process):
        self.docker_bin = docker_bin
        self._run = run

    def create_argv(self, spec: SandboxSpec) -> List[str]:
        argv = [
            self.docker_bin, "create",
            "-m", f"{spec.memory_mb}m",
            "--memory-swap", f"{spec.memory_mb}m",
        ]
        if not spec.network:
            argv += ["--network", "none"]
        for key, value in sorted(spec.env.items()):
            argv += ["-e", f"{key}={value}"]
        argv += [
            "--name", spec.name,
            "-v", f"{spec.workdir.resolve()}:{spec.mount_point}",
            spec.image,
        ]
        return argv

    def create(self, spec: SandboxSpec) -> None:
        # a redelivered job may find the container of the worker that died
        # "no such container" is the normal case here
        self._run([self.docker_bin, "rm", "-f", spec.name])
        res = self._run(self.create_argv(spec))
        if not res.ok:
            raise SandboxCreateFailed(spec.name, (res.stderr or res.stdout).strip() or f"exit {res.exit_code}")
        log.info("container_created", name=spec.name, image=spec.image)

    def start(self, name: str) -> SandboxExit:
        res = self._run([self.docker_bin, "start", "-a", name])
        return SandboxExit(exit_code=res.exit_code, stdout=res.stdout, stderr=res.stderr)

    def destroy(self, name: str) -> None:
        res = self._run([self.docker_bin, "rm", "-f", name])
        if not res.ok:
            raise SandboxDestroyFailed(name, (res.stderr or res.stdout).strip() or f"exit {res.exit_code}")
        log.info("container_removed", name=name)

    def check_health(self) -> Tuple[bool, str]:
        """Return (healthy, detail) for the docker daemon."""
        res = self._run([self.docker_bin, "info", "--format", "{{.ServerVersion}}"])
        if not res.ok:
            return False, (res.stderr or res.stdout).strip() or "docker daemon unavailable"
        return True, f"docker daemon ready (server {res.stdout.strip() or 'unknown'})"
