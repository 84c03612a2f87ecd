"""
skate.services.seed — Demo Data Seeder
========================================

Seeds the demo roster and a handful of sample challenges from
``seeds/demo.yaml`` so a fresh in-memory server has something to show.

Idempotent: users that already exist are skipped, and challenges are only
seeded into an empty store.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from skate.engine.records import utcnow
from skate.services.store import ChallengeStore

logger = logging.getLogger(__name__)

# Resolve the seeds directory relative to the project root
_SEEDS_DIR = Path(__file__).resolve().parent.parent.parent / "seeds"


def _load_yaml(filename: str, seeds_dir: Path = _SEEDS_DIR) -> dict[str, Any]:
    """Load a YAML file from the seeds directory."""
    path = seeds_dir / filename
    if not path.exists():
        logger.warning("Seed file not found: %s", path)
        return {}
    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _seed_users(store: ChallengeStore, items: list[dict]) -> int:
    count = 0
    for item in items:
        if store.get_user(item["id"]) is not None:
            continue
        store.create_user(item["username"], user_id=item["id"])
        count += 1
    return count


def _seed_challenges(store: ChallengeStore, items: list[dict]) -> int:
    if store.list_challenges():
        logger.info("Challenges already present — skipping sample challenges.")
        return 0

    now = utcnow()
    for item in items:
        fields = dict(item)
        hours = fields.pop("expires_in_hours", None)
        if hours is not None:
            fields["expires_at"] = now + timedelta(hours=hours)
        store.create_challenge(fields)
    return len(items)


def seed_demo_data(store: ChallengeStore, seeds_dir: Path = _SEEDS_DIR) -> dict[str, int]:
    """Seed users and sample challenges.  Returns counts of what was added."""
    data = _load_yaml("demo.yaml", seeds_dir)
    summary = {
        "users": _seed_users(store, data.get("users", [])),
        "challenges": _seed_challenges(store, data.get("challenges", [])),
    }
    logger.info("Demo seed complete — %d users, %d challenges",
                summary["users"], summary["challenges"])
    return summary
