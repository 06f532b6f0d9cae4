from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .executor.base import Sandbox
from .executor.docker import DockerSandbox
from .executor.local import LocalSandbox
from .services.job_service import SubmissionService
from .services.job_store import JobStore
from .services.orchestrator import Orchestrator
from .services.result_cache import ResultCache
from .services.storage import WorkspaceManager
from .services.worker import Worker
from .settings import Settings


@dataclass
class Engine:
    settings: Settings
    store: JobStore
    results: ResultCache
    sandbox: Sandbox
    orchestrator: Orchestrator
    service: SubmissionService
    worker: Worker


def build_sandbox(s: Settings) -> Sandbox:
    backend = s.sandbox_backend.lower()
    if backend == "docker":
        return DockerSandbox(docker_bin=s.docker_bin)
    if backend == "local":
        return LocalSandbox(
            s.runtimes,
            isolate_network=s.isolate_network,
            oom_exit_code=s.oom_exit_code,
            time_limit_env=s.time_limit_env,
        )
    raise ValueError(f"unknown sandbox backend: {s.sandbox_backend!r}")


def build_engine(s: Settings, sandbox: Optional[Sandbox] = None) -> Engine:
    """Wire the engine once per process; the single worker callback is registered here."""
    store = JobStore(s.queue_url)
    results = ResultCache(s.cache_url)
    sandbox = sandbox or build_sandbox(s)
    orchestrator = Orchestrator(sandbox, results, WorkspaceManager(s.execution_area), s)
    service = SubmissionService(store, results)
    worker = store.register_worker(
        orchestrator.process,
        poll_interval_s=s.poll_interval_s,
        stale_after_s=s.stale_after_s,
    )
    return Engine(
        settings=s,
        store=store,
        results=results,
        sandbox=sandbox,
        orchestrator=orchestrator,
        service=service,
        worker=worker,
    )
