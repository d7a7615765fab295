"""
CLI helper to seed discover categories and sample articles.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slimcircle.dependencies import get_document_store
from shared.firebase_constants import ARTICLES_COLLECTION, CATEGORIES_COLLECTION
from shared.utils import utc_now

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"id": "cat-1", "name": "Mindset"},
    {"id": "cat-2", "name": "Productivity"},
    {"id": "cat-3", "name": "Habits"},
    {"id": "cat-4", "name": "Goals"},
    {"id": "cat-5", "name": "Leadership"},
    {"id": "cat-6", "name": "Wellness"},
]

ARTICLES = [
    {
        "id": "article-1",
        "title": "The Power of Small Wins: How Tiny Actions Create Big Change",
        "coverImageUrl": "https://images.unsplash.com/photo-1499750310107-5fef28a66643?w=800&q=80",
        "content": (
            "Real growth rarely happens in a single moment. It is built through "
            "hundreds of small, intentional choices that compound over time.\n\n"
            "Lower the bar of perfection and raise the bar of consistency."
        ),
        "authorName": "Vincent Hu",
        "authorTitle": "Founder, Imminence",
        "readingTimeMinutes": 5,
        "category": "Mindset",
    },
    {
        "id": "article-2",
        "title": "Why Your Morning Routine is Your Secret Weapon",
        "coverImageUrl": "https://images.unsplash.com/photo-1434030216411-0b793f4b4173?w=800&q=80",
        "content": (
            "The first hour of your day sets the tone for everything that follows.\n\n"
            "Start small. Wake up 30 minutes earlier and use that time for one "
            "thing that matters to you."
        ),
        "authorName": "Sarah Nguyen",
        "authorTitle": "Life Coach & Founder",
        "readingTimeMinutes": 4,
        "category": "Productivity",
    },
]


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed discover content")
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Spread article publish dates over the last N days",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    store = get_document_store()
    now = utc_now()

    for category in CATEGORIES:
        store.set(CATEGORIES_COLLECTION, category["id"], category)
        logger.info("Seeded category %s", category["name"])

    for article in ARTICLES:
        published_at = now - timedelta(seconds=random.uniform(0, args.days * 86400))
        data = {
            **{key: value for key, value in article.items() if key != "id"},
            "publishedAt": published_at,
            "createdAt": now,
            "updatedAt": now,
        }
        store.set(ARTICLES_COLLECTION, article["id"], data)
        logger.info("Seeded article %s", article["title"])

    logger.info("Seeded %d categories and %d articles", len(CATEGORIES), len(ARTICLES))
    return 0


if __name__ == "__main__":
    sys.exit(main())
