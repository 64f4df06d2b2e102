from typing import List, Optional, Any, Dict
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.api.schemas.product import ProductOut


class PaymentDetails(BaseModel):
    type: Optional[str] = Field(None, description="Payment type (e.g. 'card', 'test')")
    card_last4: Optional[str] = Field(None, description="Last 4 digits of card (test gateway accepts '4242')")


class OrderCreate(BaseModel):
    # address and mode are checked by the order service so that bad values get its error codes
    address: Optional[Any] = Field(None, description="Delivery address")
    payment_mode: Optional[Any] = Field(
        None,
        validation_alias=AliasChoices("paymentMode", "payment_mode"),
        description="COD or ONLINE",
    )
    payment: Optional[PaymentDetails] = Field(None, description="Required for ONLINE payment")


class StatusUpdate(BaseModel):
    status: Optional[Any] = Field(None, description="PLACED, SHIPPED or DELIVERED")
    expected_version: Optional[int] = Field(None, description="Optimistic-lock expected version")


class OrderItemOut(BaseModel):
    id: Optional[str] = None
    order_id: Optional[str] = None
    product_id: str
    quantity: int
    price: float
    product: Optional[ProductOut] = None


class OrderOut(BaseModel):
    id: str
    user_id: str
    address: str
    total: float
    payment_mode: str
    payment_status: str
    status: str
    payment_tx: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    status_history: List[Dict[str, Any]] = []
    version: int = 0
    items: List[OrderItemOut] = []

    model_config = ConfigDict(extra="allow")


class OrderMessage(BaseModel):
    message: str
    order: OrderOut
