"""Run one sync cycle against the backend from the command line."""

import argparse
import asyncio
import json
import logging
import os
import sys

from canteen_pos.config import Settings
from canteen_pos.errors import CanteenError
from canteen_pos.gateway import OrderGateway
from canteen_pos.services.sync import SyncReconciler
from canteen_pos.session import CanteenSession
from canteen_pos.storage import SQLiteStorage


async def sync_once(args: argparse.Namespace, settings: Settings) -> dict:
    storage = SQLiteStorage(args.db or settings.database_url)
    session = CanteenSession()
    session.login(args.token, args.canteen_id)
    gateway = OrderGateway(
        args.base_url or settings.gateway_base_url,
        session,
        timeout_s=settings.gateway_timeout_seconds,
    )
    reconciler = SyncReconciler(
        storage, gateway, session, walkin_batch_size=settings.walkin_push_batch_size
    )
    try:
        if args.menu_id is not None:
            await reconciler.sync_menu(args.menu_id)
        if args.pull_only:
            return {"pull": (await reconciler.pull_todays_orders()).to_dict()}
        return (await reconciler.run_sync()).to_dict()
    finally:
        storage.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Push completed orders and walk-ins, then pull today's orders")
    parser.add_argument("--token", default=os.getenv("CANTEEN_TOKEN"), help="Backend auth token")
    parser.add_argument("--canteen-id", type=int, required=True, help="Canteen id")
    parser.add_argument("--db", default=None, help="Database URL (defaults to DATABASE_URL)")
    parser.add_argument("--base-url", default=None, help="Backend API base URL")
    parser.add_argument("--menu-id", type=int, default=None, help="Also download this menu")
    parser.add_argument("--pull-only", action="store_true", help="Skip push-back")
    args = parser.parse_args()

    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.token:
        parser.error("--token or CANTEEN_TOKEN is required")

    try:
        result = asyncio.run(sync_once(args, settings))
    except CanteenError as e:
        logging.getLogger("sync_once").error(f"Sync failed: {e}")
        sys.exit(1)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
