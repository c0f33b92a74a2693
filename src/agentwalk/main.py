# file: agentwalk/main.py
import os
from pathlib import Path

from agentwalk.config.config_loader import AppConfig
from agentwalk.core.engine import run_paper
from agentwalk.utils.logger import setup_logger

logger = setup_logger(__name__)


def _default_config_path() -> Path:
    """
    Resolves config.txt: AGENTWALK_CONFIG first, then config.txt in the CWD,
    finally the repo root (parent of src/).
    """
    env_path = os.getenv("AGENTWALK_CONFIG")
    if env_path:
        return Path(env_path)

    cwd_candidate = Path.cwd() / "config.txt"
    if cwd_candidate.exists():
        return cwd_candidate

    return Path(__file__).resolve().parents[2] / "config.txt"


def main():
    cfg_path = _default_config_path()
    cfg = AppConfig.from_sources(str(cfg_path))

    logger.info(f"Starting AgentWalk in mode: {cfg.mode.upper()}")

    if cfg.mode == "paper":
        run_paper(cfg)
    else:
        logger.error(f"Invalid mode in config: {cfg.mode}")
        raise ValueError(f"Invalid mode: {cfg.mode}")


if __name__ == "__main__":
    main()
