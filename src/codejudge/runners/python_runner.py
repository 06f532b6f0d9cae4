from pathlib import Path
from .base import Runner


class PythonRunner(Runner):
    language = "python"
    source_name = "submission.py"
    oom_markers = ("MemoryError",)

    def __init__(self, python_bin: str = "python3"):
        self.python_bin = python_bin

    def command(self, workdir: Path):
        return [self.python_bin, str(workdir / self.source_name)]
