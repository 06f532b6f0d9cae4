from __future__ import annotations
import math
import os
import shutil
import signal
import subprocess
import time
from functools import partial
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import structlog

from ..core.errors import SandboxCreateFailed, SandboxDestroyFailed, UnsupportedLanguage
from ..core.models import (
    COMPILE_FILE, INPUT_FILE, NO_TIMEOUT, OUTPUT_FILE, RUNTIME_FILE, STATS_DELIMITER,
    STATS_FILE, TIMEOUT_FILE, ExecutionType,
)
from ..runners.base import Runner
from ..runners.registry import get_runner
from .base import MODE_ENV, Sandbox, SandboxExit, SandboxSpec
from .process import run_process
from .rlimits import apply_rlimits

log = structlog.get_logger()

TIMED_OUT = "1\n"


class LocalSandbox(Sandbox):
    """
    Runs submissions directly on the host, for development and tests.
    Isolation is best-effort: rlimits per process, plus `unshare --net` when
    running as root. The harness writes the same artifacts the container images do:
      <workdir>/
        ├─ compile.txt     compiler diagnostics, empty on success
        ├─ runtime.txt     stderr of a failed run, empty on clean exit
        ├─ timeout.txt     "0\\n" unless the time limit was hit
        ├─ submission.txt  program stdout
        └─ stats.txt       <memoryKB>-<timeMs>
    """

    def __init__(
        self,
        runtimes: Optional[Mapping[str, str]] = None,
        *,
        isolate_network: bool = True,
        oom_exit_code: int = 137,
        time_limit_env: str = "TIME_LIMIT",
        compile_timeout_s: float = 30,
        nofile: int = 64,
    ):
        self.runtimes = dict(runtimes or {})
        self.isolate_network = isolate_network
        self.oom_exit_code = oom_exit_code
        self.time_limit_env = time_limit_env
        self.compile_timeout_s = compile_timeout_s
        self.nofile = nofile
        self._sandboxes: Dict[str, Tuple[SandboxSpec, Runner]] = {}

    # ------------ lifecycle ------------

    def create(self, spec: SandboxSpec) -> None:
        if spec.name in self._sandboxes:
            raise SandboxCreateFailed(spec.name, "name already in use")
        if not spec.workdir.is_dir():
            raise SandboxCreateFailed(spec.name, f"workdir {spec.workdir} does not exist")
        language = spec.image.rsplit("-", 1)[-1]
        try:
            runner = get_runner(language, self.runtimes)
        except UnsupportedLanguage as e:
            raise SandboxCreateFailed(spec.name, f"no image {spec.image}") from e
        self._sandboxes[spec.name] = (spec, runner)

    def start(self, name: str) -> SandboxExit:
        entry = self._sandboxes.get(name)
        if entry is None:
            return SandboxExit(exit_code=1, stderr=f"no such sandbox: {name}")
        spec, runner = entry
        wd = spec.workdir

        compile_argv = runner.compile_command(wd)
        if compile_argv:
            res = run_process(compile_argv, timeout=self.compile_timeout_s)
            if not res.ok:
                diag = (res.stderr or res.stdout) or f"compiler exited with code {res.exit_code}"
                self._write_artifacts(wd, compile_error=diag, output="")
                return SandboxExit(exit_code=0)

        return self._run_program(spec, runner)

    def destroy(self, name: str) -> None:
        if self._sandboxes.pop(name, None) is None:
            raise SandboxDestroyFailed(name, "no such sandbox")

    # ------------ harness ------------

    def _argv(self, spec: SandboxSpec, runner: Runner):
        argv = runner.command(spec.workdir)
        unshare = shutil.which("unshare")
        if not spec.network and self.isolate_network and unshare and os.geteuid() == 0:
            argv = [unshare, "--net"] + argv
        return argv

    def _program_input(self, spec: SandboxSpec) -> Path:
        text = (spec.workdir / INPUT_FILE).read_text(encoding="utf-8")
        if spec.env.get(MODE_ENV) == ExecutionType.JUDGE.value:
            # drop the test-case count line
            text = text.split("\n", 1)[1] if "\n" in text else ""
        path = spec.workdir / ".stdin"
        path.write_text(text, encoding="utf-8")
        return path

    def _run_program(self, spec: SandboxSpec, runner: Runner) -> SandboxExit:
        wd = spec.workdir
        time_limit = float(spec.env.get(self.time_limit_env, spec.time_limit_s))
        limit_kb = spec.memory_mb * 1024
        memory_bytes = limit_kb * 1024 if runner.limit_address_space else None
        preexec = partial(apply_rlimits, int(math.ceil(time_limit)) + 1, memory_bytes, self.nofile)
        env = {
            "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
            "HOME": str(wd),
            "LANG": "C.UTF-8",
            **spec.env,
        }
        stdin_path = self._program_input(spec)
        stderr_path = wd / ".stderr"

        start = time.monotonic()
        with open(stdin_path, "rb") as fin, open(wd / OUTPUT_FILE, "wb") as fout, open(stderr_path, "wb") as ferr:
            try:
                proc = subprocess.Popen(
                    self._argv(spec, runner),
                    stdin=fin,
                    stdout=fout,
                    stderr=ferr,
                    cwd=str(wd),
                    env=env,
                    start_new_session=True,
                    preexec_fn=preexec,
                )
            except OSError as e:
                self._write_artifacts(wd, runtime_error=str(e))
                return SandboxExit(exit_code=0)

            timed_out = over_memory = False
            deadline = start + time_limit
            while True:
                pid, status, usage = os.wait4(proc.pid, os.WNOHANG)
                if pid:
                    break
                rss_kb = _rss_kb(proc.pid)
                over_memory = rss_kb is not None and rss_kb > limit_kb
                timed_out = time.monotonic() >= deadline
                if timed_out or over_memory:
                    try:
                        os.killpg(proc.pid, signal.SIGKILL)
                    except ProcessLookupError:
                        pass
                    pid, status, usage = os.wait4(proc.pid, 0)
                    break
                time.sleep(0.005)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        rc = os.waitstatus_to_exitcode(status)
        proc.returncode = rc
        stats = f"{usage.ru_maxrss}{STATS_DELIMITER}{elapsed_ms}"
        timed_out = (timed_out and not over_memory) or rc == -signal.SIGXCPU

        if timed_out:
            self._write_artifacts(wd, timed_out=True, stats=stats)
            return SandboxExit(exit_code=0)

        stderr = stderr_path.read_bytes().decode("utf-8", errors="replace") if rc != 0 else ""
        if over_memory or rc == -signal.SIGKILL or self._out_of_memory(runner, rc, stderr, usage.ru_maxrss, limit_kb):
            self._write_artifacts(wd, stats=stats)
            log.warning("local_sandbox_memory_exceeded", name=spec.name, rss_kb=usage.ru_maxrss, limit_kb=limit_kb)
            return SandboxExit(exit_code=self.oom_exit_code, stderr="memory limit exceeded")

        runtime_error = ""
        if rc != 0:
            runtime_error = stderr or f"process exited with code {rc}"
        self._write_artifacts(wd, runtime_error=runtime_error, stats=stats)
        return SandboxExit(exit_code=0)

    @staticmethod
    def _out_of_memory(runner: Runner, rc: int, stderr: str, maxrss_kb: int, limit_kb: int) -> bool:
        """A failed run that hit the address-space cap or peaked at the memory limit."""
        if rc == 0:
            return False
        if maxrss_kb >= limit_kb:
            return True
        return any(marker in stderr for marker in runner.oom_markers)

    @staticmethod
    def _write_artifacts(
        wd: Path,
        *,
        compile_error: str = "",
        runtime_error: str = "",
        timed_out: bool = False,
        stats: str = f"0{STATS_DELIMITER}0",
        output: Optional[str] = None,
    ) -> None:
        (wd / COMPILE_FILE).write_text(compile_error, encoding="utf-8")
        (wd / RUNTIME_FILE).write_text(runtime_error, encoding="utf-8")
        (wd / TIMEOUT_FILE).write_text(TIMED_OUT if timed_out else NO_TIMEOUT, encoding="utf-8")
        (wd / STATS_FILE).write_text(stats, encoding="utf-8")
        if output is not None or not (wd / OUTPUT_FILE).exists():
            (wd / OUTPUT_FILE).write_text(output or "", encoding="utf-8")


def _rss_kb(pid: int) -> Optional[int]:
    """Resident set size of a live process, None where /proc is unavailable."""
    try:
        with open(f"/proc/{pid}/status", "r", encoding="ascii", errors="replace") as f:
            for line in f:
                if line.startswith("VmRSS:"):
                    return int(line.split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return None
