"""
Payload shapes accepted by the gateway and the responses it returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..validation.engine import rule_field
from ..validation.rules import DATETIME_RULE


@dataclass
class Credentials:
    """Login body; consumed once per attempt, never persisted."""

    login: Optional[str] = rule_field("required", "max=100")
    secret: Optional[str] = rule_field("required", "max=100")


@dataclass
class ServiceRequest:
    """Customer request for a service booking."""

    request_id: Optional[str] = rule_field("required", "max=50")
    dealer_code: Optional[str] = rule_field("required", "max=20")
    client_name: Optional[str] = rule_field("required", "min=1", "max=150")
    phone: Optional[str] = rule_field("required", "min=5", "max=20", "numeric")
    email: Optional[str] = rule_field("max=100", "email")
    vin: Optional[str] = rule_field("len=17")
    car_model: Optional[str] = rule_field("max=100")
    mileage: Optional[int] = rule_field("min=0", "max=5000000")
    comment: Optional[str] = rule_field("max=1000")


@dataclass
class ServiceOrder:
    """Work order opened against a service request."""

    order_id: Optional[str] = rule_field("required", "max=50")
    request_id: Optional[str] = rule_field("required", "max=50")
    dealer_code: Optional[str] = rule_field("required", "max=20")
    order_date: Optional[str] = rule_field("required", DATETIME_RULE)
    amount: Optional[float] = rule_field("required", "min=0")
    currency: Optional[str] = rule_field("len=3")
    comment: Optional[str] = rule_field("max=1000")


@dataclass
class ServiceStatus:
    """Status transition of a work order."""

    order_id: Optional[str] = rule_field("required", "max=50")
    status: Optional[str] = rule_field("required", "oneof=new in_progress done cancelled")
    status_date: Optional[str] = rule_field("required", DATETIME_RULE)
    comment: Optional[str] = rule_field("max=1000")


class TokenResponse(BaseModel):
    """Response body for a successful login."""

    token: str = Field(..., description="Signed access token")
    exp: datetime = Field(..., description="Absolute expiry of the token")


class AcceptedResponse(BaseModel):
    """Response body for an accepted submission."""

    status: str = "ok"
    response: str = "data_received"
