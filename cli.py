from __future__ import annotations

import asyncio
import os

from auth.providers import PromptCodeProvider
from auth.rucaptcha import RucaptchaProvider
from auth.token_store import FileSessionStore
from lkdr.client import Client
from lkdr.constants import BASE_URL, LOGGER
from lkdr.env import get_env_float, get_env_int, load_env, setup_logging, validate_env
from lkdr.models import ReceiptFilter


def create_client(*, debug: bool = True) -> Client:
    return Client(
        device_id=os.getenv("LKDR_DEVICE_ID", "").strip(),
        user_agent=os.getenv("LKDR_USER_AGENT", "").strip(),
        code_provider=PromptCodeProvider(),
        captcha_provider=RucaptchaProvider(os.getenv("RUCAPTCHA_KEY", "").strip()),
        session_store=FileSessionStore(os.getenv("LKDR_TOKENS_FILE", ".tokens.json")),
        base_url=os.getenv("LKDR_BASE_URL", BASE_URL),
        timeout=get_env_float("LKDR_TIMEOUT", 30.0),
        debug=debug,
    )


async def print_last_receipt(client: Client, phone: str, *, limit: int = 1) -> None:
    async with client:
        result = await client.receipts(
            phone,
            ReceiptFilter(limit=limit, offset=0, order_by="RECEIVE_DATE:DESC"),
        )
        if not result.receipts:
            print(f"No receipts found for {phone}.")
            return

        last = result.receipts[0]
        print(f"Last receipt key: {last.key}")

        fiscal_data = await client.fiscal_data(phone, last.key)
        if not fiscal_data.items:
            LOGGER.warning("Receipt %s has no items", last.key)
            return
        print(f"First item in last receipt: {fiscal_data.items[0].name}")


def main() -> None:
    load_env()
    debug_enabled = setup_logging()
    validate_env()

    phone = os.getenv("LKDR_PHONE", "").strip()
    limit = get_env_int("LKDR_RECEIPT_LIMIT", 1)
    client = create_client(debug=debug_enabled)
    asyncio.run(print_last_receipt(client, phone, limit=limit))


if __name__ == "__main__":
    main()
