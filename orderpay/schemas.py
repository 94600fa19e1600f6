from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from orderpay.models import OrderStatus


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class OrderCreate(BaseModel):
    product_ref: str = Field(..., min_length=1, examples=["sku-1"])
    amount: int = Field(..., gt=0, examples=[500])       # smallest currency unit


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    product_ref: str
    amount: int
    status: OrderStatus
    external_payment_ref: str | None
    created_at: datetime
    updated_at: datetime


class CheckoutResponse(BaseModel):
    order: OrderRead
    client_secret: str
