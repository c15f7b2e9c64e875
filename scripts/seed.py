"""Populate a development database with demo users and articles."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from articles_api.cache import cache
from articles_api.database import Base, async_session, engine
from articles_api.models import Article, User
from articles_api.security import hash_password

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "caching",
          "testing", "performance", "security", "jwt", "sqlalchemy", "asyncio"]

DEMO_PASSWORD = "password123"


async def seed(num_users: int, num_articles: int) -> None:
    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # One hash shared by every demo account; bcrypt is deliberately slow.
    password_hash = hash_password(DEMO_PASSWORD)

    async with async_session() as session:
        users = [
            User(email=f"user_{i:03d}@example.com", password_hash=password_hash)
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users (password: {DEMO_PASSWORD})")

        now = datetime.now(timezone.utc)
        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                created = now - timedelta(days=random.randint(0, 365), minutes=random.randint(0, 1440))
                topic = random.choice(TOPICS)
                session.add(Article(
                    title=f"Article {i}: Getting started with {topic}",
                    content=f"This is the full content of article {i} about {topic}. " * 20,
                    # Roughly one in five articles stays a draft.
                    published_at=created + timedelta(hours=1) if random.random() > 0.2 else None,
                    created_at=created,
                    updated_at=created,
                    author_id=random.choice(users).id,
                ))
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    # Cached pages describe the old dataset.
    await cache.connect()
    await cache.clear()
    await cache.disconnect()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the articles database")
    parser.add_argument("--users", type=int, default=10, help="Number of users to create")
    parser.add_argument("--articles", type=int, default=200, help="Number of articles to create")
    args = parser.parse_args()
    asyncio.run(seed(args.users, args.articles))


if __name__ == "__main__":
    main()
