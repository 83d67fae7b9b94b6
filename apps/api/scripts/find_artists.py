from __future__ import annotations

import argparse
import json
import os

import httpx


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find the artists behind a source URL.")
    parser.add_argument("url", help="Post, image or profile URL to look up.")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("ARTDEX_API_BASE_URL", "http://localhost:8000"),
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with httpx.Client(base_url=args.base_url) as client:
        response = client.get("/v1/artists/finder", params={"url": args.url})
        response.raise_for_status()
        artists = response.json()["artists"]

    if not artists:
        print("No artists found.")
        return
    for artist in artists:
        print(json.dumps({"id": artist["id"], "name": artist["name"]}))


if __name__ == "__main__":
    main()
