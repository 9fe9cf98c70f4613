"""Entry point for the Goha POS Textual app."""

from __future__ import annotations

import argparse
import logging

from goha_pos.api import ApiClient
from goha_pos.cart import ExtrasPricing
from goha_pos.config import API_BASE_URL, DB_PATH
from goha_pos.local_store import LocalStore
from goha_pos.log import setup_logging
from goha_pos.receipt_app import GohaPosApp

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goha-pos", description="Restaurant point-of-sale terminal client.")
    parser.add_argument("--base-url", default=API_BASE_URL, help="REST backend base URL")
    parser.add_argument("--db", default=DB_PATH, help="local SQLite cache path")
    parser.add_argument("--log-file", default=None, help="log file path")
    parser.add_argument(
        "--screen",
        choices=("cashier", "stock", "monitoring"),
        default="cashier",
        help="screen shown at startup",
    )
    parser.add_argument(
        "--extras-per-parent",
        action="store_true",
        help="price extras by the parent line quantity instead of their own",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the Textual application."""
    args = build_parser().parse_args(argv)
    log_file = setup_logging(args.log_file)

    store = LocalStore(args.db)
    store.bootstrap_schema()
    pricing = ExtrasPricing.PER_PARENT_QUANTITY if args.extras_per_parent else ExtrasPricing.PER_EXTRA_QUANTITY
    logger.info("starting base_url=%s db=%s screen=%s log=%s", args.base_url, args.db, args.screen, log_file)

    with ApiClient(args.base_url, token_provider=store.auth_token) as api:
        GohaPosApp(api, store, start_screen=args.screen, pricing=pricing).run()


if __name__ == "__main__":
    main()
