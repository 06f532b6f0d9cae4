from __future__ import annotations
from typing import Dict, Mapping, Optional

from ..core.errors import UnsupportedLanguage
from .base import Runner
from .compiled import CppRunner, CRunner, JavaRunner
from .python_runner import PythonRunner

SUPPORTED_LANGUAGES = frozenset({"c", "cpp", "python", "java"})


def get_runner(language: str, runtimes: Optional[Mapping[str, str]] = None) -> Runner:
    """Build the runner for `language`, with toolchain binaries taken from `runtimes`.

    `runtimes` keys: python, cc, cxx, javac, java.
    """
    rt: Dict[str, str] = dict(runtimes or {})
    if language == "python":
        return PythonRunner(python_bin=rt.get("python", "python3"))
    if language == "c":
        return CRunner(cc=rt.get("cc", "gcc"))
    if language == "cpp":
        return CppRunner(cxx=rt.get("cxx", "g++"))
    if language == "java":
        return JavaRunner(javac=rt.get("javac", "javac"), java=rt.get("java", "java"))
    raise UnsupportedLanguage(language)


def source_name(language: str) -> str:
    return get_runner(language).source_name
