#!/usr/bin/env python3
"""Seed manual interest tags for a user from a CSV (category,value,score)."""

import csv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pulse_recs import db
from pulse_recs.models import InterestSource, InterestTag, TagCategory
from pulse_recs.normalize import normalize_tag_value

_CATEGORIES = {c.value for c in TagCategory}


def _load_tags_csv(path: Path, user_id: str) -> list[InterestTag]:
    tags = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            category = row.get("category", "").strip().lower()
            value = row.get("value", "").strip()
            if category not in _CATEGORIES or not value:
                continue
            score_str = row.get("score", "").strip() or "1"
            try:
                score = float(score_str)
            except ValueError:
                continue
            tags.append(
                InterestTag(
                    user_id=user_id,
                    category=TagCategory(category),
                    value=normalize_tag_value(value),
                    score=max(0.0, min(1.0, score)),
                    source=InterestSource.MANUAL,
                )
            )
    return tags


def main():
    if len(sys.argv) != 3:
        print("usage: seed_interest_tags.py USER_ID TAGS_CSV")
        sys.exit(1)
    user_id, path = sys.argv[1], Path(sys.argv[2])

    tags = _load_tags_csv(path, user_id)
    print(f"Loaded {len(tags)} tags from {path}")

    for tag in tags:
        db.upsert_interest_tag(tag)
        print(f"  {tag.category.value}: {tag.value} ({tag.score:.2f})")

    print(f"\nSeeded {len(tags)} interest tags.")


if __name__ == "__main__":
    main()
