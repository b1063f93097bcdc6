#!/usr/bin/env python3
"""
Smoke check for a running blacklist mock API server.

Runs health, check, add, duplicate-add and delete calls against the server
and prints one line per step. Exits non-zero if any step returns an
unexpected status.

Usage:
  python3 scripts/smoke_api.py --base-url http://localhost:3000
"""

from __future__ import annotations

import argparse
import os
import sys
import uuid

SRC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


def run_smoke(client) -> list[tuple[str, int, int]]:
    """Return (step, expected, actual) for each step."""
    probe = f"smoke_{uuid.uuid4().hex[:8]}"
    steps = [
        ("health", 200, lambda: client.health()),
        ("check seeded", 200, lambda: client.check("malicious_user")),
        ("check blank", 400, lambda: client.check(" ")),
        ("add", 201, lambda: client.add(probe, reason="smoke test", added_by="smoke_api")),
        ("add duplicate", 409, lambda: client.add(probe.upper())),
        ("remove", 200, lambda: client.remove(probe)),
        ("remove missing", 404, lambda: client.remove(probe)),
        ("stats", 200, lambda: client.stats()),
    ]
    results = []
    for label, expected, call in steps:
        results.append((label, expected, call().status))
    return results


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke test a running blacklist mock API")
    parser.add_argument("--base-url", default=os.getenv("MOCKAPI_BASE_URL", "http://localhost:3000"))
    parser.add_argument("--timeout", type=float, default=5.0)
    args = parser.parse_args(argv)

    import requests

    from client import BlacklistClient

    client = BlacklistClient(args.base_url, timeout=args.timeout)
    try:
        results = run_smoke(client)
    except requests.RequestException as exc:
        print(f"Server unreachable at {args.base_url}: {type(exc).__name__}")
        return 2

    failures = 0
    for label, expected, actual in results:
        mark = "ok" if expected == actual else "FAIL"
        if expected != actual:
            failures += 1
        print(f"{mark:<5} {label:<16} expected={expected} got={actual}")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
