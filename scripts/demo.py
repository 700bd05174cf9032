#!/usr/bin/env python3
"""Walk a few related queries through the semantic cache."""

import asyncio
import time

from seekmix import SemanticCache
from seekmix.config import get_settings

QUERIES = [
    "What are the best restaurants in Madrid",
    "Recommend me where to eat in Madrid",
    "I need information about restaurants in Barcelona",
    "I want to know places to eat in Madrid",
    "How do I repot a cactus",
]


async def expensive_call(query: str) -> str:
    """Stand-in for a slow upstream call (an LLM completion, say)."""
    print(f"  calling upstream for: {query!r}")
    await asyncio.sleep(1)
    return f"Answer for: {query} ({time.strftime('%H:%M:%S')})"


async def main() -> None:
    settings = get_settings()
    settings.cache.similarity_threshold = 0.9
    settings.cache.ttl_seconds = 60 * 60

    async with SemanticCache(settings) as cache:
        print(f"\n  namespace: {cache.namespace.token}\n")

        for query in QUERIES:
            print(f"> {query}")
            hit = await cache.get(query)

            if hit is not None:
                age = round((time.time() * 1000 - hit.timestamp) / 1000)
                print(f"  HIT  similarity={hit.similarity:.4f}")
                print(f"  original query: {hit.query!r}")
                print(f"  result: {hit.result}")
                print(f"  stored {age}s ago\n")
                continue

            print("  MISS")
            result = await expensive_call(query)
            await cache.set(query, result)
            print(f"  result: {result}\n")


if __name__ == "__main__":
    asyncio.run(main())
