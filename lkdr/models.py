from __future__ import annotations

from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from .constants import SERVICE_TIMEZONE

LOCAL_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _service_timezone(info: ValidationInfo) -> tzinfo:
    context = info.context or {}
    timezone = context.get("timezone")
    if timezone is None:
        timezone = ZoneInfo(SERVICE_TIMEZONE)
    return timezone


def _parse_local_datetime(value, info: ValidationInfo):
    # Receipt timestamps carry no offset; they are wall-clock time of the service.
    if isinstance(value, str):
        parsed = datetime.strptime(value, LOCAL_DATETIME_FORMAT)
        return parsed.replace(tzinfo=_service_timezone(info))
    return value


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReceiptFilter(_Model):
    date_from: date | None = None
    date_to: date | None = None
    inn: str | None = None
    kkt_owner: str = ""
    limit: int = Field(default=10, gt=0)
    offset: int = Field(default=0, ge=0)
    order_by: str = "RECEIVE_DATE:DESC"

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Brand(_Model):
    id: int = 0
    name: str = ""
    description: str = ""
    image: str = ""


class Receipt(_Model):
    key: str = ""
    brand_id: int = 0
    buyer: str = ""
    buyer_type: str = ""
    created_date: datetime | None = None
    fiscal_document_number: str = ""
    fiscal_drive_number: str = ""
    kkt_owner: str = ""
    kkt_owner_inn: str = ""
    receive_date: datetime | None = None
    total_sum: str = ""

    @field_validator("created_date", "receive_date", mode="before")
    @classmethod
    def _local_datetime(cls, value, info: ValidationInfo):
        return _parse_local_datetime(value, info)


class ReceiptList(_Model):
    brands: list[Brand] = []
    receipts: list[Receipt] = []
    has_more: bool = False


class FiscalDataItem(_Model):
    name: str = ""
    nds: int = 0
    payment_type: int = 0
    price: float = 0
    product_type: int = 0
    provider_inn: str = ""
    quantity: float = 0
    sum: float = 0


class FiscalData(_Model):
    buyer_address: str = ""
    cash_total_sum: float = 0
    credit_sum: float = 0
    date_time: datetime | None = None
    ecash_total_sum: float = 0
    fiscal_document_format_ver: str = ""
    fiscal_document_number: int = 0
    fiscal_drive_number: str = ""
    fiscal_sign: str = ""
    internet_sign: int = 0
    items: list[FiscalDataItem] = []
    kkt_reg_id: str = ""
    machine_number: str = ""
    nds10: float = 0
    nds18: float = 0
    operation_type: int = 0
    prepaid_sum: float = 0
    provision_sum: float = 0
    request_number: int = 0
    retail_place: str = ""
    retail_place_address: str = ""
    shift_number: int = 0
    taxation_type: int = 0
    total_sum: float = 0
    user: str = ""
    user_inn: str = ""

    @field_validator("date_time", mode="before")
    @classmethod
    def _local_datetime(cls, value, info: ValidationInfo):
        return _parse_local_datetime(value, info)
