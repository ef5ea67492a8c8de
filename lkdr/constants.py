from __future__ import annotations

import logging

BASE_URL = "https://mco.nalog.ru/api"
SERVICE_TIMEZONE = "Europe/Moscow"

RECEIPT_PATH = "/v1/receipt"
FISCAL_DATA_PATH = "/v1/receipt/fiscal_data"

LOGGER = logging.getLogger("lkdr.api")
APP_VERSION = "1.0.0"
