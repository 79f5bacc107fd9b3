"""
Load test for the climbing comp API.
Simulates many climbers logging attempts and requesting validation at once.

Session cookies are minted with the app's own SECRET_KEY, so run this
against a server started with the same environment.
"""

import asyncio
import random
import time
import aiohttp

from app import create_app

# -----------------------------
# CONFIG - ADJUST IF NEEDED
# -----------------------------
BASE_URL = "http://127.0.0.1:5000"

# Seeded climber profile ids ("climber-12" .. "climber-511")
MIN_CLIMBER = 12
MAX_CLIMBER = 511

# Boulder ids configured for the competition under test
BOULDER_IDS = [1, 2, 3, 5, 6, 9, 10, 14]

# Total POST requests to send
TOTAL_REQUESTS = 2000

# How many run simultaneously
MAX_CONCURRENT = 150

# Share of requests that ask for validation instead of a plain save
VALIDATION_SHARE = 0.3


def session_cookie_for(serializer, user_id):
    return serializer.dumps({"user_id": user_id})


# -----------------------------
# Load test functions
# -----------------------------
async def submit(session, cookie, boulder_id):
    count = random.randint(0, 5)
    if count and random.random() < VALIDATION_SHARE:
        url = f"{BASE_URL}/api/validation/request"
        payload = {"boulder_id": boulder_id, "attempt_count": count}
    else:
        url = f"{BASE_URL}/api/attempt"
        payload = {"boulder_id": boulder_id, "count": count}

    try:
        async with session.post(url, json=payload, cookies={"session": cookie}) as resp:
            text = await resp.text()
            # 409 = boulder already validated, expected under load
            if resp.status not in (200, 409):
                print(f"[ERROR {resp.status}] {payload} :: {text[:200]}")
            return resp.status
    except Exception as e:
        print(f"[EXCEPTION] {e} :: {payload}")
        return None


async def worker(name, session, task_queue):
    while True:
        item = await task_queue.get()
        if item is None:
            task_queue.task_done()
            break

        cookie, boulder_id = item
        await submit(session, cookie, boulder_id)
        task_queue.task_done()


async def main():
    app = create_app()
    serializer = app.session_interface.get_signing_serializer(app)

    task_queue = asyncio.Queue()

    # Generate all simulated requests
    for _ in range(TOTAL_REQUESTS):
        user_id = f"climber-{random.randint(MIN_CLIMBER, MAX_CLIMBER)}"
        boulder_id = random.choice(BOULDER_IDS)
        await task_queue.put((session_cookie_for(serializer, user_id), boulder_id))

    # Add sentinel None tasks to close workers
    for _ in range(MAX_CONCURRENT):
        await task_queue.put(None)

    async with aiohttp.ClientSession() as session:
        workers = [
            asyncio.create_task(worker(f"worker-{i}", session, task_queue))
            for i in range(MAX_CONCURRENT)
        ]

        print(f"Sending {TOTAL_REQUESTS} requests with concurrency {MAX_CONCURRENT}...")
        start = time.time()

        await task_queue.join()
        end = time.time()

        for w in workers:
            await w

        print(f"Completed in {end - start:.2f} seconds")


if __name__ == "__main__":
    asyncio.run(main())
