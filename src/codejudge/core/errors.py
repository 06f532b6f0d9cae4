from __future__ import annotations


class JudgeError(Exception):
    """Base class for every error raised by the execution engine."""


class UnsupportedLanguage(JudgeError):
    def __init__(self, language: str):
        super().__init__(f"unsupported language: {language!r}")
        self.language = language


class InvalidJobPayload(JudgeError):
    def __init__(self, job_id: str, detail: str):
        super().__init__(f"invalid payload for {job_id}: {detail}")
        self.job_id = job_id
        self.detail = detail


class WorkspaceSetupFailed(JudgeError):
    def __init__(self, job_id: str, detail: str):
        super().__init__(f"workspace setup failed for {job_id}: {detail}")
        self.job_id = job_id


class SandboxError(JudgeError):
    pass


class SandboxCreateFailed(SandboxError):
    def __init__(self, name: str, detail: str):
        super().__init__(f"sandbox {name} could not be created: {detail}")
        self.name = name


class TeardownFailed(JudgeError):
    pass


class SandboxDestroyFailed(TeardownFailed, SandboxError):
    def __init__(self, name: str, detail: str):
        super().__init__(f"sandbox {name} could not be destroyed: {detail}")
        self.name = name


class WorkspaceTeardownFailed(TeardownFailed):
    def __init__(self, job_id: str, detail: str):
        super().__init__(f"workspace for {job_id} could not be removed: {detail}")
        self.job_id = job_id
