"""Command-line driver for a running route guide server.

Run:
    routeguide-client --url http://127.0.0.1:8980
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from features.loaders import load_features_json
from logging_config import setup_logging
from routeclient.helper import RouteGuideClient
from routeclient.remote import HttpStub
from settings.loader import features_path, get_config


async def _run(args: argparse.Namespace) -> int:
    features = load_features_json(args.features)
    async with HttpStub(args.url) as stub:
        client = RouteGuideClient(stub)
        # Looking for a valid feature, then a missing one.
        await client.get_feature(409146138, -746188906)
        await client.get_feature(0, 0)
        await client.list_features(400000000, -750000000, 420000000, -730000000)
        await client.record_route(features, args.points)
        await client.route_chat()
    return 0


def build_parser() -> argparse.ArgumentParser:
    config = get_config()
    p = argparse.ArgumentParser(prog="routeguide-client")
    p.add_argument(
        "--url",
        default=f"http://{config.server.host}:{config.server.port}",
        help="server base URL",
    )
    p.add_argument(
        "--features",
        type=Path,
        default=features_path(),
        help="feature database used to pick RecordRoute points",
    )
    p.add_argument("--points", type=int, default=10, help="points to send in RecordRoute")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_config().logging)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
