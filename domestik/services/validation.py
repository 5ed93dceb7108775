"""Input validation for client and service writes.

``validate_client`` and ``validate_service`` never raise: structural problems
(missing fields, wrong types) and rule violations are collected into one list
of human-readable messages so a form can show all of them at once.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from domestik.models.entities import DEFAULT_CLIENT_COLOR

RULE_ERROR = "domestik_rule"

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MIN_TIME_WORKED = 0.5
MAX_TIME_WORKED = 24.0
MIN_HOURLY_RATE = 0.01
MAX_HOURLY_RATE = 1000.0


def _rule(message: str) -> PydanticCustomError:
    return PydanticCustomError(RULE_ERROR, message)


class ClientSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID | None = None
    name: str
    color: str = DEFAULT_CLIENT_COLOR
    archived: bool = Field(default=False, strict=True)
    created_at: datetime | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < NAME_MIN_LENGTH:
            raise _rule("Name must be at least 2 characters")
        if len(value) > NAME_MAX_LENGTH:
            raise _rule("Name must be less than 100 characters")
        return value

    @field_validator("color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if not COLOR_PATTERN.match(value):
            raise _rule("Invalid color format")
        return value


class ServiceSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    id: uuid.UUID | None = None
    date: str
    client_id: str
    time_worked: float = Field(strict=True)
    hourly_rate: float = Field(strict=True)
    total: float = Field(strict=True)
    created_at: datetime | None = None

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, value: Any) -> str:
        if isinstance(value, date) and not isinstance(value, datetime):
            return value.isoformat()
        if not isinstance(value, str) or not DATE_PATTERN.match(value):
            raise _rule("Invalid date format (YYYY-MM-DD)")
        try:
            date.fromisoformat(value)
        except ValueError:
            raise _rule("Invalid date format (YYYY-MM-DD)") from None
        return value

    @field_validator("client_id", mode="before")
    @classmethod
    def check_client_id(cls, value: Any) -> str:
        if isinstance(value, uuid.UUID):
            return str(value)
        if not isinstance(value, str):
            raise _rule("Please select a client")
        try:
            return str(uuid.UUID(value))
        except ValueError:
            raise _rule("Please select a client") from None

    @field_validator("time_worked")
    @classmethod
    def check_time_worked(cls, value: float) -> float:
        if value < MIN_TIME_WORKED:
            raise _rule("Minimum 0.5 hours")
        if value > MAX_TIME_WORKED:
            raise _rule("Maximum 24 hours per day")
        return value

    @field_validator("hourly_rate")
    @classmethod
    def check_hourly_rate(cls, value: float) -> float:
        if value < MIN_HOURLY_RATE:
            raise _rule("Rate must be greater than 0")
        if value > MAX_HOURLY_RATE:
            raise _rule("Rate seems too high")
        return value

    @field_validator("total")
    @classmethod
    def check_total(cls, value: float) -> float:
        if value < 0:
            raise _rule("Total must be positive")
        return value


@dataclass(slots=True)
class ValidationResult:
    success: bool
    data: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)


def _error_messages(exc: ValidationError) -> list[str]:
    messages: list[str] = []
    for error in exc.errors():
        if error["type"] == RULE_ERROR:
            messages.append(error["msg"])
            continue
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def _validate(schema: type[BaseModel], data: Any) -> ValidationResult:
    if not isinstance(data, dict):
        return ValidationResult(success=False, errors=["Input must be an object"])
    try:
        model = schema.model_validate(data)
    except ValidationError as exc:
        return ValidationResult(success=False, errors=_error_messages(exc))
    return ValidationResult(success=True, data=model.model_dump(mode="json", exclude_none=True))


def validate_client(data: Any) -> ValidationResult:
    """Validate raw client input; on success ``data`` holds the normalized client."""

    return _validate(ClientSchema, data)


def validate_service(data: Any) -> ValidationResult:
    """Validate raw service input; on success ``data`` holds the normalized service."""

    return _validate(ServiceSchema, data)
