from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from phenom.config import get_settings
from phenom.db.session import dispose_engine, get_engine
from phenom.user_stats import StatsStore


logger = logging.getLogger("push_local_stats")


def push(uid: str, path: Optional[Path] = None) -> int:
    settings = get_settings()
    if not settings.remote_enabled:
        logger.error("Remote store disabled; set PHENOM_DATABASE_URL and PHENOM_PERSISTENCE_MODE=hybrid")
        return 1

    get_engine()
    store = StatsStore(local_path=path)
    local = store.load()
    merged = store.sync_with_cloud(uid, local)
    logger.info(
        "Synced %s: xp=%d level=%d unlocked=%d high_scores=%d",
        uid,
        merged.xp,
        merged.level,
        len(merged.unlocked_challenges),
        len(merged.high_scores),
    )
    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge the local stats file into the remote store for a user.")
    parser.add_argument("uid", help="Remote identity the stats belong to.")
    parser.add_argument("--path", type=Path, default=None, help="Local stats file (defaults to PHENOM_STATS_PATH).")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args()
    try:
        code = push(args.uid, args.path)
    finally:
        dispose_engine()
    sys.exit(code)


if __name__ == "__main__":
    main()
