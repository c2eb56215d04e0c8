"""
Kitchen Monitor

Terminal kitchen display: joins a restaurant's realtime channel, keeps the
reconciliation poll running and redraws the three queues every few seconds.

Run from project root:
    python scripts/kitchen_monitor.py --slug demo-restaurant --token <kitchen token>
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from menucraft.core.config import get_settings, setup_logging  # noqa: E402
from menucraft.core.exceptions import AuthorizationError  # noqa: E402
from menucraft.kitchen import (  # noqa: E402
    KitchenEventListener,
    KitchenSyncClient,
    OrdersApiClient,
    OrderView,
)
from menucraft.kitchen.realtime import channel_url  # noqa: E402

logger = logging.getLogger("menucraft.monitor")


def render(sync: KitchenSyncClient) -> None:
    settings = get_settings()
    stats = sync.stats()
    avg = f"{stats.avg_prep_minutes} min" if stats.avg_prep_minutes is not None else "-"

    print("\033[2J\033[H", end="")
    print("=" * 70)
    print(f"🍳 {sync.slug}  |  today: {stats.total}  pending: {stats.pending}  "
          f"in progress: {stats.in_progress}  done: {stats.completed}  avg prep: {avg}")
    print("=" * 70)

    for title, queue in (
        ("PENDING", sync.pending()),
        ("IN PROGRESS", sync.in_progress()),
        ("COMPLETED", sync.completed()),
    ):
        print(f"\n{title} ({len(queue)})")
        for order in queue:
            view = OrderView.build(
                order,
                pending_minutes=settings.pending_urgent_minutes,
                in_progress_minutes=settings.in_progress_urgent_minutes,
            )
            flag = "🔥" if view.urgent else "  "
            print(f" {flag} #{order.order_number:<4} {order.customer_name:<20} "
                  f"{order.order_type.value:<9} {view.elapsed:<12} [{view.action_label}]")


async def monitor(slug: str, token: str, refresh_seconds: float) -> None:
    settings = get_settings()

    async with OrdersApiClient(settings.api_base_url) as api:
        sync = await KitchenSyncClient.for_restaurant(api, slug)
        listener = KitchenEventListener(sync, channel_url(settings.api_base_url), token=token)

        poll_task = asyncio.create_task(sync.run())
        listen_task = asyncio.create_task(listener.run())
        try:
            while not listen_task.done():
                render(sync)
                await asyncio.sleep(refresh_seconds)
            listen_task.result()
        except AuthorizationError as e:
            logger.error(f"Channel join refused: {e.message}")
        finally:
            sync.stop()
            await listener.stop()
            listen_task.cancel()
            await asyncio.gather(poll_task, listen_task, return_exceptions=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Terminal kitchen display")
    parser.add_argument("--slug", default="demo-restaurant", help="Restaurant slug")
    parser.add_argument("--token", default=None, help="Kitchen channel token (see scripts/seed.py)")
    parser.add_argument("--refresh", type=float, default=2.0, help="Redraw interval in seconds")
    args = parser.parse_args()

    setup_logging()
    try:
        asyncio.run(monitor(args.slug, args.token, args.refresh))
    except KeyboardInterrupt:
        pass
