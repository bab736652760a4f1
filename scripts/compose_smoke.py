#!/usr/bin/env python3
from __future__ import annotations

import os
import sys

import httpx


def main() -> int:
    base_url = os.getenv("KRISHISAKHA_API_URL", "http://localhost:8000").rstrip("/")
    try:
        health = httpx.get(f"{base_url}/healthz", timeout=5)
        health.raise_for_status()
        print("/healthz:", health.text)
        advice = httpx.post(
            f"{base_url}/advice",
            json={"question": "Wheat prices in Punjab"},
            timeout=30,
        )
        advice.raise_for_status()
        body = advice.json()
        print("/advice factual_basis:", body["factual_basis"], "sources:", len(body["sources"]))
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        print(f"Smoke check failed: {exc}", file=sys.stderr)
        return 1
    print("Smoke check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
