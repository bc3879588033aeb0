#!/usr/bin/env python3
"""Rebuild interaction taste snapshots, for one user or every active user."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pulse_recs.recommend.taste_builder import (
    build_user_taste_profile,
    recompute_taste_profiles,
    save_user_taste_profile,
)


def main():
    if len(sys.argv) > 1:
        user_id = sys.argv[1]
        profile = build_user_taste_profile(user_id)
        save_user_taste_profile(user_id, profile)
        print(f"Snapshot for {user_id}:")
        print(f"  genres: {profile.top_genres}")
        print(f"  tags: {profile.top_tags}")
        print(f"  neighborhoods: {profile.preferred_neighborhoods}")
        print(f"  time slots: {profile.preferred_time_slots}")
        return

    processed, succeeded, failed = recompute_taste_profiles()
    print(f"Processed {processed} users: {succeeded} rebuilt, {failed} failed.")


if __name__ == "__main__":
    main()
