from __future__ import annotations
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest

from codejudge.core.errors import SandboxCreateFailed, SandboxDestroyFailed
from codejudge.core.models import (
    COMPILE_FILE, EXPECTED_FILE, OUTPUT_FILE, RUNTIME_FILE, STATS_FILE, TIMEOUT_FILE,
    ExecutionRequest,
)
from codejudge.executor.base import Sandbox, SandboxExit, SandboxSpec
from codejudge.services.job_store import JobStore
from codejudge.services.result_cache import ResultCache
from codejudge.settings import Settings

ArtifactMap = Dict[str, Union[str, bytes]]


def passing_artifacts(spec: SandboxSpec) -> ArtifactMap:
    """Artifacts of a clean run whose stdout equals the expected output."""
    return {
        COMPILE_FILE: "",
        RUNTIME_FILE: "",
        TIMEOUT_FILE: "0\n",
        OUTPUT_FILE: (spec.workdir / EXPECTED_FILE).read_text(),
        STATS_FILE: "1024-250",
    }


class FakeSandbox(Sandbox):
    """In-memory backend: writes canned artifacts into the workspace on start."""

    def __init__(
        self,
        artifacts: Union[ArtifactMap, Callable[[SandboxSpec], ArtifactMap], None] = None,
        *,
        exit_code: int = 0,
        fail_create: bool = False,
        fail_destroy: bool = False,
        start_error: Optional[Exception] = None,
    ):
        self.artifacts = artifacts if artifacts is not None else passing_artifacts
        self.exit_code = exit_code
        self.fail_create = fail_create
        self.fail_destroy = fail_destroy
        self.start_error = start_error
        self.specs: Dict[str, SandboxSpec] = {}
        self.created: List[SandboxSpec] = []
        self.calls: List[str] = []
        self.seen_files: Dict[str, str] = {}

    def create(self, spec: SandboxSpec) -> None:
        self.calls.append("create")
        if self.fail_create:
            raise SandboxCreateFailed(spec.name, "image not found")
        self.specs[spec.name] = spec
        self.created.append(spec)

    def start(self, name: str) -> SandboxExit:
        self.calls.append("start")
        spec = self.specs[name]
        self.seen_files = {p.name: p.read_text() for p in spec.workdir.iterdir()}
        if self.start_error is not None:
            raise self.start_error
        artifacts = self.artifacts(spec) if callable(self.artifacts) else self.artifacts
        for fname, content in artifacts.items():
            data = content if isinstance(content, bytes) else content.encode("utf-8")
            (spec.workdir / fname).write_bytes(data)
        return SandboxExit(exit_code=self.exit_code)

    def destroy(self, name: str) -> None:
        self.calls.append("destroy")
        if self.fail_destroy:
            raise SandboxDestroyFailed(name, "device or resource busy")
        self.specs.pop(name, None)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    db = tmp_path / "judge.db"
    return Settings(
        execution_area=tmp_path / "execution-area",
        queue_url=f"sqlite:///{db}",
        cache_url=f"sqlite:///{db}",
        sandbox_backend="local",
        isolate_network=False,
        runtimes={"python": sys.executable},
        poll_interval_s=0.01,
        stale_after_s=0,
    )


@pytest.fixture
def store(settings: Settings) -> JobStore:
    return JobStore(settings.queue_url)


@pytest.fixture
def cache(settings: Settings) -> ResultCache:
    return ResultCache(settings.cache_url)


@pytest.fixture
def judge_request() -> ExecutionRequest:
    return ExecutionRequest.model_validate({
        "language": "python",
        "code": "print(input())",
        "testCases": [{"input": "5", "output": "5"}],
        "executionType": "judge",
        "timeLimit": 2,
        "memoryLimit": 256,
    })
