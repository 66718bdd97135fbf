"""Create tables and seed the default categories and tags.

Usage:
    python -m scripts.seed_taxonomy
"""

import asyncio
import logging
import sys

from studyhub.config import get_settings
from studyhub.services.database import dispose_engine, get_session_factory, init_models
from studyhub.services.taxonomy import seed_reference_data

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

SEED_CATEGORIES = [
    {
        "name": "Programming",
        "description": "Languages, frameworks and the craft of writing code",
        "color": "#3b82f6",
    },
    {
        "name": "Mathematics",
        "description": "Proofs, problem sets and intuition for the tricky bits",
        "color": "#8b5cf6",
    },
    {
        "name": "Computer Science",
        "description": "Algorithms, data structures and systems fundamentals",
        "color": "#10b981",
    },
    {
        "name": "Languages",
        "description": "Vocabulary lists, grammar notes and study routines",
        "color": "#f59e0b",
    },
    {
        "name": "Study Tips",
        "description": "Note-taking, spaced repetition and exam preparation",
        "color": "#ef4444",
    },
]

SEED_TAGS = [
    {"name": "Python"},
    {"name": "JavaScript"},
    {"name": "Algorithms"},
    {"name": "Linear Algebra"},
    {"name": "Calculus"},
    {"name": "Databases"},
    {"name": "Beginner"},
    {"name": "Exam Prep"},
]


async def main() -> int:
    if not get_settings().database_url:
        print("DATABASE_URL is not set.")
        return 1

    await init_models()
    async with get_session_factory()() as session:
        categories, tags = await seed_reference_data(
            session, SEED_CATEGORIES, SEED_TAGS
        )
    await dispose_engine()

    print(f"Added {categories} categories and {tags} tags.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
