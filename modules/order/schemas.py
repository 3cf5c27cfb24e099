"""
Order Module - Request Schemas
================================
Checkout bodies shared by the COD and online-payment routes.
Wire names are camelCase; unknown fields are ignored.
"""

from decimal import Decimal
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator


class CustomerInfo(BaseModel):
    name: str = ""
    email: Optional[EmailStr] = None
    phone: str = ""
    address: str = ""
    notes: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class OrderItemInput(BaseModel):
    product_id: int = Field(..., validation_alias=AliasChoices("id", "productId", "product_id"))
    quantity: int = 1


class CheckoutRequest(BaseModel):
    """
    Client totals (`amount`, `discountAmount`, `shippingCharges`) are
    accepted for logging only; the charge is recomputed from the catalog.
    """
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Decimal] = None
    items: List[OrderItemInput] = []
    customer: CustomerInfo = CustomerInfo()
    shipping_charges: Optional[Decimal] = Field(None, alias="shippingCharges")
    coupon_code: Optional[str] = Field(None, alias="couponCode")
    discount_amount: Optional[Decimal] = Field(None, alias="discountAmount")

    def item_pairs(self):
        return [(item.product_id, item.quantity) for item in self.items]


class OrderStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: Union[int, str] = Field(..., alias="orderId")
    status: str = Field(..., min_length=1)
