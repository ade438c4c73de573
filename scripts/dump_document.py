#!/usr/bin/env python3
"""Dump the home-inventory document the pyhomemind library syncs.

This script signs in (anonymously, or with ``HOMEMIND_AUTH_TOKEN``),
subscribes to the personal document (or a shared one), waits for the first
snapshot, and prints the spaces, items, options and checklists.

Usage
-----
Set environment variables and run::

    export HOMEMIND_API_KEY="..."
    export HOMEMIND_PROJECT_ID="my-project"
    python scripts/dump_document.py

Options::

    --share TOKEN       Read the shared (read-only) document for TOKEN
    --share-url URL     Same, taking the token from an application URL
    --json              Output the raw document as JSON
    --publish URL       Publish the personal document and print a share link
    --timeout SECONDS   How long to wait for the first snapshot (default 20)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyhomemind import HomeMindClient, HomeMindConfig, SessionPhase, share_token_from_url  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _render(client: HomeMindClient) -> str:
    lines: list[str] = []
    lines.append(_section("Spaces"))
    for space in client.spaces:
        items = client.items_in(space.id)
        lines.append(f"  [{space.id}] {space.name}  ({len(items)} items)")
        for item in items:
            marker = " *" if item.winner is not None else ""
            lines.append(f"      - {item.name}{marker}")
            for option in item.options:
                flag = "WIN" if option.winner else "   "
                price = option.price or "-"
                lines.append(f"          {flag} {option.model or '?'} @ {option.store or '?'}  {price}")
    for title, entries in (("Groceries", client.groceries), ("Repairs", client.repairs)):
        lines.append(_section(title))
        if not entries:
            lines.append("  (empty)")
        for entry in entries:
            box = "x" if entry.completed else " "
            lines.append(f"  [{box}] {entry.text}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    share = args.share
    if args.share_url:
        share = share_token_from_url(args.share_url)
        if share is None:
            print(f"No share token in {args.share_url}", file=sys.stderr)
            return 2

    config = HomeMindConfig.from_env()
    async with HomeMindClient(config, share_token=share) as client:
        phase = await client.start(timeout=args.timeout)
        if phase is not SessionPhase.SYNCED:
            print(f"Session ended in {phase}: {client.error_message}", file=sys.stderr)
            return 1

        if args.publish:
            token = await client.publish_share()
            print(client.share_url(args.publish, token))
            return 0

        if args.json:
            print(json.dumps(client.cache.document().to_wire(), indent=2, ensure_ascii=False))
        else:
            print(f"Document: {client.engine.path}  read_only={client.read_only}")
            print(_render(client))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--share", help="share token of a read-only document")
    parser.add_argument("--share-url", help="application URL carrying a share token")
    parser.add_argument("--json", action="store_true", help="print the raw document as JSON")
    parser.add_argument("--publish", metavar="URL", help="publish a share and print the link for URL")
    parser.add_argument("--timeout", type=float, default=20.0)
    parser.add_argument("-v", "--verbose", action="store_true", help="enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
