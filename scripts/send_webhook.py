"""Send a sample `payment.captured` notification to the webhook.

With `--copies > 1` the same payment is delivered concurrently, which is
useful for checking that racing duplicates produce a single registration.
"""

import argparse
import asyncio
import json
from collections import Counter
from pathlib import Path
from uuid import uuid4

import httpx


def sample_notification(event_id: str, email: str, amount: int, payment_id: str | None = None) -> dict:
    """Build a provider-shaped notification body."""

    return {
        "event": "payment.captured",
        "payment": {
            "id": payment_id or f"pay_{uuid4().hex[:14]}",
            "email": email,
            "amount": amount,
            "notes": {"event_id": event_id},
        },
    }


async def deliver(base_url: str, payload: dict, copies: int) -> list[httpx.Response]:
    """POST `copies` identical deliveries at once."""

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [client.post(f"{base_url}/api/payment-webhook", json=payload) for _ in range(copies)]
        return await asyncio.gather(*tasks)


def main() -> None:
    """Parse CLI args, deliver the notification and print each response."""

    parser = argparse.ArgumentParser(description="Send a payment.captured webhook.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--event-id", default="event_a")
    parser.add_argument("--email", default="attendee@example.com")
    parser.add_argument("--amount", type=int, default=50000, help="Amount in minor units")
    parser.add_argument("--payment-id", default=None)
    parser.add_argument("--file", dest="json_file", default=None, help="Send this JSON body instead")
    parser.add_argument("--copies", type=int, default=1)
    args = parser.parse_args()

    if args.json_file:
        payload = json.loads(Path(args.json_file).read_text())
    else:
        payload = sample_notification(args.event_id, args.email, args.amount, args.payment_id)

    responses = asyncio.run(deliver(args.base_url, payload, max(1, args.copies)))
    for resp in responses:
        print(f"status={resp.status_code} body={resp.text}")
    duplicates = Counter(bool(resp.json().get("duplicate")) for resp in responses if resp.status_code == 200)
    print(f"created={duplicates[False]} duplicates={duplicates[True]}")


if __name__ == "__main__":
    main()
