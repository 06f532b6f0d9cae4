from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from ..core.errors import SandboxCreateFailed, SandboxError, TeardownFailed
from ..core.models import ExecutionResult, Job, Limits, Progress, ResultStatus
from ..core.utils import clamp_limits, format_seconds
from ..executor.base import MODE_ENV, Sandbox, SandboxSpec
from ..settings import Settings
from .classifier import classify, memory_limit_exceeded
from .result_cache import ResultCache
from .storage import Workspace, WorkspaceManager
from .worker import ProgressReporter


def _ignore_progress(progress: Progress) -> None:
    pass


class Orchestrator:
    """
    Drives one job through workspace -> sandbox -> classification -> publication -> teardown.
    The result is published before teardown and on every path that reaches the sandbox run.
    """

    def __init__(self, sandbox: Sandbox, results: ResultCache, workspaces: WorkspaceManager, settings: Settings):
        self.sandbox = sandbox
        self.results = results
        self.workspaces = workspaces
        self.s = settings

    def limits_for(self, job: Job) -> Limits:
        return clamp_limits(job.request, self.s.max_time_limit_s, self.s.max_memory_mb)

    def sandbox_spec(self, job: Job, ws: Workspace, limits: Limits) -> SandboxSpec:
        req = job.request
        return SandboxSpec(
            name=job.job_id,
            image=f"{self.s.image_prefix}-{req.language}",
            workdir=ws.path,
            mount_point=self.s.mount_point,
            memory_mb=limits.memory_mb,
            time_limit_s=limits.time_limit_s,
            network=False,
            env={
                self.s.time_limit_env: format_seconds(limits.time_limit_s),
                MODE_ENV: req.execution_type.value,
            },
        )

    def process(self, job: Job, report: Optional[ProgressReporter] = None) -> ExecutionResult:
        report = report or _ignore_progress
        log = structlog.get_logger().bind(job_id=job.job_id, language=job.request.language)

        report(Progress.STARTED)
        limits = self.limits_for(job)
        log.info("job_started", time_limit_s=limits.time_limit_s, memory_mb=limits.memory_mb,
                 mode=job.request.execution_type.value)

        with self.workspaces.acquire(job) as ws:
            report(Progress.WORKSPACE_READY)
            spec = self.sandbox_spec(job, ws, limits)
            with self._sandbox(spec, log):
                report(Progress.SANDBOX_CREATED)
                result = ExecutionResult(status=ResultStatus.CE, message="")
                try:
                    result = self._run_and_classify(job, ws, spec, report, log)
                finally:
                    self.results.publish(job.job_id, result)
                    log.info("result_published", verdict=result.status.value,
                             time_ms=result.time_taken_ms, memory_kb=result.memory_used_kb)

        report(Progress.CLEANED)
        log.info("job_cleaned")
        return result

    @contextmanager
    def _sandbox(self, spec: SandboxSpec, log) -> Iterator[str]:
        try:
            self.sandbox.create(spec)
        except SandboxCreateFailed as e:
            log.error("sandbox_create_failed", error=str(e))
            raise
        try:
            yield spec.name
        finally:
            try:
                self.sandbox.destroy(spec.name)
            except TeardownFailed as e:
                log.error("sandbox_destroy_failed", error=str(e))
                raise

    def _run_and_classify(self, job: Job, ws: Workspace, spec: SandboxSpec, report: ProgressReporter, log) -> ExecutionResult:
        try:
            exit = self.sandbox.start(spec.name)
        except (SandboxError, OSError) as e:
            # classification still runs on whatever the sandbox left behind
            log.warning("sandbox_start_failed", error=str(e))
        else:
            report(Progress.SANDBOX_RAN)
            if exit.killed_by_backend(self.s.oom_exit_code):
                log.info("sandbox_killed_by_backend", exit_code=exit.exit_code)
                return memory_limit_exceeded()
            if exit.exit_code != 0:
                log.warning("sandbox_start_failed", exit_code=exit.exit_code, stderr=exit.stderr[-2000:])

        artifacts = self.workspaces.collect(ws, job.request.execution_type)
        result = classify(artifacts, job.request.execution_type)
        report(Progress.RESULT_COMPUTED)
        return result
