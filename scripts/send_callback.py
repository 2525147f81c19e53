"""Post a raw delivery notification to a running checkout instance.

The body is sent byte-for-byte, so malformed payloads can be replayed too.
"""

import argparse
from pathlib import Path

import httpx


def main() -> None:
    """Parse CLI args and post one callback body."""

    parser = argparse.ArgumentParser(description="Send a raw callback body.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--path", default="/callback")
    parser.add_argument("--body", dest="body_inline", default=None, help="Inline body")
    parser.add_argument("--file", dest="body_file", default=None, help="Path to body file")
    args = parser.parse_args()

    if bool(args.body_inline) == bool(args.body_file):
        raise SystemExit("Provide exactly one of --body or --file")

    if args.body_inline:
        content = args.body_inline.encode("utf-8")
    else:
        content = Path(args.body_file).read_bytes()

    resp = httpx.post(
        f"{args.base_url}{args.path}",
        content=content,
        headers={"Content-Type": "application/json"},
        timeout=10.0,
    )
    print(f"status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
