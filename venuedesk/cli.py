"""
Approve or reject a booking/facility from the terminal.

    venuedesk-status booking 3f2c... approve
    venuedesk-status facility 91ab... reject --api https://admin.example.com

Uses the same StatusActionControl as the web UI, so ambiguous outcomes are
reconciled by a delayed refresh before the command exits.
"""

import argparse
import asyncio
import logging
import sys

from .client.api import StatusApiClient
from .client.control import ControlTimings, StatusActionControl
from .client.rendering import render, to_text
from .client.storage import LocalStatusStore
from .config import API_BASE_URL, CLIENT_STATE_FILE
from .statuses import ENTITY_KINDS

logger = logging.getLogger(__name__)


async def run_action(
    kind_name: str,
    entity_id: str,
    action: str,
    api_url: str,
    state_file: str,
    transport=None,
    timings: ControlTimings = ControlTimings(),
) -> int:
    kind = ENTITY_KINDS[kind_name]
    async with StatusApiClient(api_url, transport=transport) as api:
        current = await api.fetch_status(kind, entity_id)
        control = await StatusActionControl.mount(
            kind, entity_id, current, api, LocalStatusStore(state_file), notify=print, timings=timings
        )
        await control.wait_settled()

        print(f"{kind.name} {entity_id}: {to_text(render(kind, control.state))}")
        if not await control.act(action):
            print(f"Nothing to do: {kind.name} is already {control.state.current_status}")
            return 1

        print(f"{kind.name} {entity_id}: {to_text(render(kind, control.state))}")
        await control.wait_settled()
        print(f"{kind.name} {entity_id}: {to_text(render(kind, control.state))}")
        if not control.state.confirmed:
            print(f"Unconfirmed: the server never reported the {kind.name} status")
            return 1
        return 0 if control.state.current_status == kind.target_for(action) else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Approve or reject a pending booking or facility")
    parser.add_argument("kind", choices=sorted(ENTITY_KINDS))
    parser.add_argument("entity_id")
    parser.add_argument("action", choices=["approve", "reject"])
    parser.add_argument("--api", default=API_BASE_URL, help="VenueDesk API base URL")
    parser.add_argument("--state-file", default=CLIENT_STATE_FILE, help="Local status record file")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        return asyncio.run(run_action(args.kind, args.entity_id, args.action, args.api, args.state_file))
    except KeyboardInterrupt:
        logger.info("👋 Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
