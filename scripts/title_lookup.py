#!/usr/bin/env python3
"""Search the title API and show how each result scores. Useful for tuning
the match threshold or checking why a title was not resolved.

Usage:
    uv run python scripts/title_lookup.py "Inception"
    uv run python scripts/title_lookup.py "The Offfice" "Breaking Bad"
"""

import argparse
import sys

import httpx

from imdbuddy.config import settings
from imdbuddy.similarity import similarity


def search_titles(title: str) -> list[dict]:
    with httpx.Client() as client:
        resp = client.get(settings.api_url, params={"query": title})
        resp.raise_for_status()
        return resp.json().get("titles", [])


def main():
    parser = argparse.ArgumentParser(description="Search the title API by title")
    parser.add_argument("titles", nargs="+", help="Titles to search for")
    args = parser.parse_args()

    for title in args.titles:
        print(f"\n{'=' * 60}")
        print(f"Search: {title}")
        print("=" * 60)
        results = search_titles(title)
        if not results:
            print("  No results found")
            continue
        for r in results:
            primary = r.get("primaryTitle") or ""
            score = similarity(title, primary) if primary else 0.0
            marker = "*" if score >= settings.min_match_score else " "
            kind = r.get("type") or "?"
            year = r.get("startYear") or "?"
            rating = (r.get("rating") or {}).get("aggregateRating") or "?"
            print(f" {marker} {score:.3f}  {r.get('id', '?'):>11}  {primary}")
            print(f"                        {kind} | {year} | rated {rating}")


if __name__ == "__main__":
    sys.exit(main() or 0)
