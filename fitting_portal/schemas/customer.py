"""
고객 프로필/신체 치수 요청 스키마.
"""
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

MAX_MEASUREMENT_CM = 500


class CustomerProfileIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    date_of_birth: date | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    hobbies: str | list[str] | None = None
    occupation: str | None = None
    usual_size: str | None = None
    custom_fields: dict[str, Any] | None = None

    def profile_fields(self) -> dict[str, Any]:
        """값이 비어 있지 않은 항목만 반환 (누락/빈 값은 기존 값 유지)."""
        values = self.model_dump(exclude={"email"})
        if isinstance(values.get("hobbies"), list):
            values["hobbies"] = ", ".join(h.strip() for h in values["hobbies"] if h and h.strip()) or None
        return {k: v for k, v in values.items() if v is not None and v != ""}


class BodyMeasurementsIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_email: str | None = None
    chest_width: float | None = None
    overall_width: float | None = None
    sleeve_width: float | None = None
    top_length: float | None = None
    waist: float | None = None
    hip: float | None = None
    rise: float | None = None
    thigh_width: float | None = None
    bottom_length: float | None = None

    @field_validator(
        "chest_width",
        "overall_width",
        "sleeve_width",
        "top_length",
        "waist",
        "hip",
        "rise",
        "thigh_width",
        "bottom_length",
        mode="before",
    )
    @classmethod
    def validate_measurement(cls, v: Any, info: ValidationInfo) -> float | None:
        if v is None or v == "":
            return None
        message = (
            f"Invalid measurement for {to_camel(info.field_name)}. "
            f"Must be a positive number less than {MAX_MEASUREMENT_CM}cm."
        )
        if isinstance(v, bool):
            raise ValueError(message)
        try:
            number = float(v)
        except (TypeError, ValueError):
            raise ValueError(message) from None
        if number != number or number < 0 or number > MAX_MEASUREMENT_CM:
            raise ValueError(message)
        return number

    def measurement_values(self) -> dict[str, float | None]:
        return self.model_dump(exclude={"customer_email"})


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def measurements_to_dict(record) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "customerEmail": record.customer_email,
        "chestWidth": record.chest_width,
        "overallWidth": record.overall_width,
        "sleeveWidth": record.sleeve_width,
        "topLength": record.top_length,
        "waist": record.waist,
        "hip": record.hip,
        "rise": record.rise,
        "thighWidth": record.thigh_width,
        "bottomLength": record.bottom_length,
        "createdAt": _iso(record.created_at),
        "updatedAt": _iso(record.updated_at),
    }


def customer_summary(customer) -> dict[str, Any]:
    return {
        "id": str(customer.id),
        "email": customer.email,
        "firstName": customer.first_name,
        "lastName": customer.last_name,
        "phoneNumber": customer.phone_number,
        "age": customer.age,
        "occupation": customer.occupation,
        "usualSize": customer.usual_size,
    }


def customer_to_dict(customer) -> dict[str, Any]:
    return {
        **customer_summary(customer),
        "dateOfBirth": customer.date_of_birth.isoformat() if customer.date_of_birth else None,
        "hobbies": customer.hobbies,
        "customFields": customer.custom_fields,
        "shopifyCustomerId": customer.shopify_customer_id,
        "createdAt": _iso(customer.created_at),
        "updatedAt": _iso(customer.updated_at),
    }
