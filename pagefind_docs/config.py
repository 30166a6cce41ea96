"""Environment and ``.env`` configuration for the CLI and MCP entry points.

Environment variables are read here, once, and translated into explicit
settings objects. Library modules (``ingest``, ``snapshot``) take those
objects as arguments and never consult the environment themselves.

Environment Variables:
    PAGEFIND_DOCS_BASE_URL       Pagefind base URL of the documentation site
    PAGEFIND_DOCS_DB_PATH        Snapshot file path (default: data/docs.parquet)
    PAGEFIND_DOCS_SNAPSHOT_URLS  Comma-separated snapshot download URLs
    PAGEFIND_DOCS_SNAPSHOT_URL   Single snapshot download URL
    PAGEFIND_DOCS_BUNDLED_DIR    Directory holding a bundled docs.parquet
    PAGEFIND_DOCS_CONCURRENCY    Fragment fetch concurrency for rescrapes
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from dotenv import load_dotenv

from .client import DEFAULT_BASE_URL
from .ingest import DEFAULT_CONCURRENCY, DEFAULT_PROGRESS_EVERY
from .snapshot import DEFAULT_SNAPSHOT_URLS, SnapshotConfig

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "pagefind-docs"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"
DEFAULT_DB_PATH = Path("data") / "docs.parquet"


@dataclass
class IngestSettings:
    """Settings for a full rescrape run."""

    db_path: Path = DEFAULT_DB_PATH
    base_url: str = DEFAULT_BASE_URL
    concurrency: int = DEFAULT_CONCURRENCY
    progress_every: int = DEFAULT_PROGRESS_EVERY


def load_env_files(
    *,
    cwd: Optional[Path] = None,
    config_env_file: Path = CONFIG_ENV_FILE,
    load_env: Callable[[Path], bool] = load_dotenv,
) -> Optional[Path]:
    """Load ``.env`` from the working directory, else the user config dir.

    Returns:
        The file that was loaded, or *None*.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    for candidate in (local_env, config_env_file):
        if candidate.is_file():
            load_env(candidate)
            LOGGER.debug("Loaded environment from %s", candidate)
            return candidate
    return None


def _split_urls(raw: Optional[str]) -> List[str]:
    if not raw or not raw.strip():
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def snapshot_urls_from_env(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Resolve snapshot URLs: list variable, single variable, then built-in default."""
    env = os.environ if environ is None else environ
    urls = (
        _split_urls(env.get("PAGEFIND_DOCS_SNAPSHOT_URLS"))
        + _split_urls(env.get("PAGEFIND_DOCS_SNAPSHOT_URL"))
        + list(DEFAULT_SNAPSHOT_URLS)
    )
    return list(dict.fromkeys(urls))


def snapshot_config_from_env(environ: Optional[Mapping[str, str]] = None) -> SnapshotConfig:
    env = os.environ if environ is None else environ
    bundled = env.get("PAGEFIND_DOCS_BUNDLED_DIR")
    return SnapshotConfig(
        source_urls=snapshot_urls_from_env(env),
        bundled_directory=Path(bundled).expanduser() if bundled and bundled.strip() else None,
    )


def _int_or(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        LOGGER.warning("Ignoring non-integer value %r", raw)
        return default
    return value if value > 0 else default


def ingest_settings_from_env(environ: Optional[Mapping[str, str]] = None) -> IngestSettings:
    env = os.environ if environ is None else environ
    return IngestSettings(
        db_path=Path(env.get("PAGEFIND_DOCS_DB_PATH") or DEFAULT_DB_PATH).expanduser(),
        base_url=env.get("PAGEFIND_DOCS_BASE_URL") or DEFAULT_BASE_URL,
        concurrency=_int_or(env.get("PAGEFIND_DOCS_CONCURRENCY"), DEFAULT_CONCURRENCY),
    )
