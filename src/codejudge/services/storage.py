from __future__ import annotations
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import structlog

from ..core.errors import UnsupportedLanguage, WorkspaceSetupFailed, WorkspaceTeardownFailed
from ..core.models import (
    COMPILE_FILE, EXPECTED_FILE, INPUT_FILE, OUTPUT_FILE, RUNTIME_FILE, STATS_FILE,
    TIMEOUT_FILE, ExecutionType, Job, SandboxArtifacts,
)
from ..core.utils import render_expected, render_inputs
from ..runners.registry import source_name

log = structlog.get_logger()


@dataclass
class Workspace:
    job_id: str
    path: Path

    def read(self, name: str) -> Optional[str]:
        # bytes as written: no newline translation, invalid utf-8 replaced
        try:
            return (self.path / name).read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            log.warning("artifact_unreadable", job_id=self.job_id, artifact=name, error=str(e))
            return None


class WorkspaceManager:
    """
    Job-scoped directories under the execution area:
      <root>/<job_id>/
        ├─ submission.<ext>  (source, name depends on language)
        ├─ input.txt         (stdin for the program)
        ├─ output.txt        (expected output, judge mode)
        └─ ...               (artifacts written by the sandbox)
    """

    def __init__(self, root: Path):
        # mounts need an absolute path
        self.root = root if root.is_absolute() else root.resolve()

    def path_for(self, job_id: str) -> Path:
        return self.root / job_id

    def prepare(self, job: Job) -> Workspace:
        req = job.request
        ws = Workspace(job.job_id, self.path_for(job.job_id))
        if ws.path.exists():
            # left over by a worker that died mid-job; the job is being redelivered
            log.warning("stale_workspace_removed", job_id=job.job_id)
            shutil.rmtree(ws.path, ignore_errors=True)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            ws.path.mkdir()
            (ws.path / source_name(req.language)).write_text(req.code, encoding="utf-8")
            stdin = render_inputs(req.test_cases) if req.execution_type == ExecutionType.JUDGE else req.input_for_run
            (ws.path / INPUT_FILE).write_text(stdin, encoding="utf-8")
            (ws.path / EXPECTED_FILE).write_text(render_expected(req.test_cases), encoding="utf-8")
        except (OSError, ValueError, UnsupportedLanguage) as e:
            # a failed setup never leaves half a workspace behind
            shutil.rmtree(ws.path, ignore_errors=True)
            raise WorkspaceSetupFailed(job.job_id, str(e)) from e
        return ws

    def remove(self, ws: Workspace) -> None:
        try:
            shutil.rmtree(ws.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.error("workspace_remove_failed", job_id=ws.job_id, error=str(e))
            raise WorkspaceTeardownFailed(ws.job_id, str(e)) from e

    @contextmanager
    def acquire(self, job: Job) -> Iterator[Workspace]:
        ws = self.prepare(job)
        try:
            yield ws
        finally:
            self.remove(ws)

    def collect(self, ws: Workspace, mode: ExecutionType) -> SandboxArtifacts:
        judge = mode == ExecutionType.JUDGE
        return SandboxArtifacts(
            compile_error=ws.read(COMPILE_FILE),
            runtime_error=ws.read(RUNTIME_FILE),
            timeout_flag=ws.read(TIMEOUT_FILE),
            output=ws.read(OUTPUT_FILE),
            expected=ws.read(EXPECTED_FILE) if judge else None,
            stats=ws.read(STATS_FILE),
        )
