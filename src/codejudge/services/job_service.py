from __future__ import annotations
from typing import AbstractSet, Optional

import structlog

from ..core.errors import UnsupportedLanguage
from ..core.models import ExecutionRequest, ExecutionResult, Job
from ..core.utils import new_job_id
from ..runners.registry import SUPPORTED_LANGUAGES
from .job_store import JobStatus, JobStore
from .result_cache import ResultCache

log = structlog.get_logger()


class SubmissionService:
    """
    Intake side of the engine: validate, assign an id, enqueue.
    Never touches the sandbox or the filesystem.
    """

    def __init__(self, store: JobStore, results: ResultCache, languages: AbstractSet[str] = SUPPORTED_LANGUAGES):
        self.store = store
        self.results = results
        self.languages = languages

    def submit(self, request: ExecutionRequest) -> str:
        if request.language not in self.languages:
            raise UnsupportedLanguage(request.language)
        job_id = new_job_id()
        self.store.enqueue(Job(job_id=job_id, request=request))
        log.info("job_enqueued", job_id=job_id, language=request.language,
                 mode=request.execution_type.value, test_cases=len(request.test_cases))
        return job_id

    def get_result(self, job_id: str) -> Optional[ExecutionResult]:
        return self.results.fetch(job_id)

    def get_status(self, job_id: str) -> Optional[JobStatus]:
        return self.store.status(job_id)
