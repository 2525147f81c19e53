"""Create one order against a running checkout instance and print the reply.

Handy for checking gateway credentials and redirect targets end to end.
"""

import argparse
import asyncio
import json
from uuid import uuid4

import httpx


async def create_order(base_url: str, payload: dict, language: str | None) -> tuple[int, str]:
    """POST one order; return (status_code, body text)."""

    headers = {"x-correlation-id": str(uuid4())}
    if language:
        headers["Accept-Language"] = language
    async with httpx.AsyncClient(timeout=15.0) as client:
        resp = await client.post(f"{base_url}/create-order", json=payload, headers=headers)
    return resp.status_code, resp.text


def main() -> None:
    """Parse CLI args and create one order."""

    parser = argparse.ArgumentParser(description="Create one checkout order.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--amount", type=float, default=None)
    parser.add_argument("--description", default=None)
    parser.add_argument("--product-id", default=None)
    parser.add_argument("--language", default=None, help="Sent as Accept-Language")
    args = parser.parse_args()

    payload = {}
    if args.amount is not None:
        payload["amount"] = args.amount
    if args.description:
        payload["description"] = args.description
    if args.product_id:
        payload["product_id"] = args.product_id

    status_code, body = asyncio.run(create_order(args.base_url, payload, args.language))
    try:
        body = json.dumps(json.loads(body), indent=2, ensure_ascii=False)
    except ValueError:
        pass
    print(f"status={status_code}")
    print(body)


if __name__ == "__main__":
    main()
