from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- paths ----
    execution_area: Path = Path("execution-area")

    # ---- shared services ----
    queue_url: str = "sqlite:///./codejudge.db"
    cache_url: str = "sqlite:///./codejudge.db"

    # ---- sandbox ----
    sandbox_backend: str = "docker"   # docker | local
    image_prefix: str = "codejudge"
    mount_point: str = "/ae"
    time_limit_env: str = "TIME_LIMIT"
    docker_bin: str = "docker"
    oom_exit_code: int = 137
    isolate_network: bool = True
    runtimes: Dict[str, str] = {}

    # ---- hard ceilings ----
    max_time_limit_s: float = 10
    max_memory_mb: int = 1024

    # ---- workers ----
    workers: int = 1
    poll_interval_s: float = 0.5
    stale_after_s: int = 300

    # ---- http ----
    cors_origins: List[str] = ["*"]

    # ---- logging ----
    log_level: str = "INFO"
    log_json: bool = True

    # env prefix CJ_*
    model_config = SettingsConfigDict(env_prefix="CJ_", extra="ignore")


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def load_settings(conf_path: Optional[Path] = None) -> Settings:
    # 0) CJ_* env on top of defaults
    env = Settings()

    # 1) conf/judge.yaml (or JUDGE_CONF)
    path = Path(conf_path or os.environ.get("JUDGE_CONF", "conf/judge.yaml"))
    data = _read_yaml(path)

    # 2) env wins over yaml, yaml wins over defaults
    from_env = env.model_dump(include=env.model_fields_set)
    return Settings(**{**data, **from_env})
