from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Files exchanged with the sandbox through the mounted workspace.
INPUT_FILE = "input.txt"
EXPECTED_FILE = "output.txt"
COMPILE_FILE = "compile.txt"
RUNTIME_FILE = "runtime.txt"
TIMEOUT_FILE = "timeout.txt"
OUTPUT_FILE = "submission.txt"
STATS_FILE = "stats.txt"

NO_TIMEOUT = "0\n"
STATS_DELIMITER = "-"


class ExecutionType(str, Enum):
    JUDGE = "judge"
    RUN = "run"


class ResultStatus(str, Enum):
    AC = "AC"
    WA = "WA"
    TLE = "TLE"
    MLE = "MLE"
    CE = "CE"
    RE = "RE"


class Progress(IntEnum):
    """Pipeline checkpoints, only ever advanced."""
    STARTED = 0
    WORKSPACE_READY = 1
    SANDBOX_CREATED = 2
    SANDBOX_RAN = 3
    RESULT_COMPUTED = 4
    CLEANED = 5


class TestCase(BaseModel):
    __test__ = False  # not a pytest class

    input: str
    output: str


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    code: str
    language: str
    test_cases: List[TestCase] = Field(default_factory=list, alias="testCases")
    execution_type: ExecutionType = Field(default=ExecutionType.JUDGE, alias="executionType")
    input_for_run: str = Field(default="", alias="inputForRun")
    time_limit: float = Field(gt=0, alias="timeLimit")       # seconds
    memory_limit: int = Field(gt=0, alias="memoryLimit")     # megabytes


class Job(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    request: ExecutionRequest


class ExecutionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: ResultStatus = Field(alias="resultStatus")
    message: str = Field(default="", alias="resultMessage")
    time_taken_ms: Optional[float] = Field(default=None, alias="timeTaken")
    memory_used_kb: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("memoryUsedInKiloBytes", "memoryUsed", "memory_used_kb"),
        serialization_alias="memoryUsedInKiloBytes",
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "ExecutionResult":
        return cls.model_validate_json(raw)


@dataclass(frozen=True)
class Limits:
    time_limit_s: float
    memory_mb: int


@dataclass
class SandboxArtifacts:
    """Artifact contents read back from a workspace; None means unreadable."""
    compile_error: Optional[str] = None
    runtime_error: Optional[str] = None
    timeout_flag: Optional[str] = None
    output: Optional[str] = None
    expected: Optional[str] = None
    stats: Optional[str] = None
