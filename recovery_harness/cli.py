#!/usr/bin/env python3
"""
Command-line client for a running harness.

Usage:
    harnessctl start 0
    harnessctl stop
    harnessctl reset
    harnessctl status
    harnessctl send "start 2"
"""

import argparse
import sys

import httpx

from recovery_harness.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harnessctl",
        description="Control the recovery harness",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Harness base URL (default: from HARNESS_HOST/HARNESS_PORT)",
    )
    parser.add_argument("--timeout", type=float, default=30.0, help="Request timeout in seconds")

    sub = parser.add_subparsers(dest="action", required=True)
    start = sub.add_parser("start", help="Start a campaign for an app index")
    start.add_argument("index", help="App index")
    sub.add_parser("stop", help="Stop the active campaign")
    sub.add_parser("reset", help="Zero all statistics")
    sub.add_parser("status", help="Print the status report")
    send = sub.add_parser("send", help="Send a raw command line")
    send.add_argument("line", help="Command text")
    return parser


def command_line(args: argparse.Namespace) -> str:
    if args.action == "start":
        return f"start {args.index}"
    if args.action == "send":
        return args.line
    return args.action


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    base_url = (args.url or get_settings().base_url).rstrip("/")

    with httpx.Client(base_url=base_url, timeout=args.timeout) as client:
        try:
            if args.action == "status":
                resp = client.get("/harness/status/text")
                resp.raise_for_status()
                print(resp.text, end="")
                return 0

            resp = client.post("/harness/command", json={"command": command_line(args)})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            print(f"✗ {e.response.status_code}: {e.response.text}", file=sys.stderr)
            return 1
        except httpx.HTTPError as e:
            print(f"✗ Harness not reachable at {base_url}: {e}", file=sys.stderr)
            return 2

    data = resp.json()
    status = data.get("status")
    message = data.get("message") or ""
    marker = "✓" if data.get("ok") else "!"
    print(f"{marker} {status}" + (f": {message}" if message else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
