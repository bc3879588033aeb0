#!/usr/bin/env python3
"""One-shot recommendation: rank upcoming events for a user and print results."""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pulse_recs.models import RecommendationOptions, Scope
from pulse_recs.recommend.ranker import RecommendationService


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id")
    parser.add_argument("--scope", choices=[s.value for s in Scope], default="all")
    parser.add_argument("--genre")
    parser.add_argument("--style")
    parser.add_argument("--limit", type=int, default=15)
    parser.add_argument("--min-score", type=float, default=0.1)
    args = parser.parse_args()

    service = RecommendationService()
    profile = service.load_profile(args.user_id)
    print(f"Profile for {args.user_id}:")
    for label, weights in (
        ("genres", profile.genres),
        ("styles", profile.styles),
        ("ambiances", profile.ambiances),
        ("categories", profile.categories),
    ):
        if weights:
            top = sorted(weights.items(), key=lambda x: -x[1])[:8]
            print(f"  {label}: " + ", ".join(f"{k} ({w:.2f})" for k, w in top))
    if profile.is_empty():
        print("  (empty, popular events will be used)")

    recs = service.get_personalized_recommendations(
        args.user_id,
        RecommendationOptions(
            limit=args.limit,
            genre=args.genre,
            style=args.style,
            scope=Scope(args.scope),
            min_score=args.min_score,
        ),
    )

    print(f"\nTop {len(recs)} recommendations ({args.scope}):\n")
    for i, rec in enumerate(recs, 1):
        event = rec.event
        tags = ", ".join(f"{t.category.value}:{t.value}" for t in event.tags) or "no tags"
        print(
            f"{i:2d}. [{rec.score:.2f}] {event.title or event.id}\n"
            f"    {event.start_at.astimezone(service.tz):%a %Y-%m-%d %H:%M} | "
            f"{event.neighborhood or 'TBA'} | {event.favorites_count} favorites\n"
            f"    {tags}\n"
            f"    {'; '.join(rec.reasons) or '-'}\n"
        )


if __name__ == "__main__":
    main()
