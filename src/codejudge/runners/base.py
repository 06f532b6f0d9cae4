from pathlib import Path
from typing import List, Optional, Tuple


class Runner:
    language: str = ""
    source_name: str = ""
    # JVMs reserve far more address space than they use
    limit_address_space: bool = True
    # stderr text the runtime prints when an allocation fails
    oom_markers: Tuple[str, ...] = ()

    def compile_command(self, workdir: Path) -> Optional[List[str]]:
        return None

    def command(self, workdir: Path) -> List[str]:
        raise NotImplementedError
