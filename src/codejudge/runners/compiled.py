from pathlib import Path
from .base import Runner


class CRunner(Runner):
    language = "c"
    source_name = "submission.c"
    oom_markers = ("std::bad_alloc",)

    def __init__(self, cc: str = "gcc"):
        self.cc = cc

    def compile_command(self, workdir: Path):
        return [self.cc, "-O2", "-o", str(workdir / "submission"), str(workdir / self.source_name), "-lm"]

    def command(self, workdir: Path):
        return [str(workdir / "submission")]


class CppRunner(CRunner):
    language = "cpp"
    source_name = "submission.cpp"

    def __init__(self, cxx: str = "g++"):
        super().__init__(cc=cxx)


class JavaRunner(Runner):
    language = "java"
    source_name = "Submission.java"
    limit_address_space = False
    oom_markers = ("java.lang.OutOfMemoryError",)

    def __init__(self, javac: str = "javac", java: str = "java"):
        self.javac = javac
        self.java = java

    def compile_command(self, workdir: Path):
        return [self.javac, "-d", str(workdir), str(workdir / self.source_name)]

    def command(self, workdir: Path):
        return [self.java, "-cp", str(workdir), "Submission"]
