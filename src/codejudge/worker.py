from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .engine import build_engine
from .logging import setup_logging
from .settings import load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codejudge-worker", description="Run code execution workers")
    parser.add_argument("--config", type=Path, default=None, help="Path to judge YAML config")
    parser.add_argument("--concurrency", type=int, default=None, help="Worker threads (default: settings.workers)")
    parser.add_argument("--once", action="store_true", help="Process at most one queued job, then exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    log = setup_logging(settings.log_level, json=settings.log_json)
    engine = build_engine(settings)
    log.info("worker_boot", backend=settings.sandbox_backend, queue=settings.queue_url)

    if args.once:
        engine.worker.run_once()
        return 0
    engine.worker.run_pool(args.concurrency or settings.workers)
    return 0


if __name__ == "__main__":
    sys.exit(main())
