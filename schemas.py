from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from models import (
    CartItem,
    DiscountType,
    ItemType,
    ModificationType,
    ModifierType,
    OrderItem,
    PaymentMethod,
)
from discount import OrderDiscount
from payment import PaymentSplit
from customers import CustomerInfo


# ---------- Cart ----------
class ModifierIn(BaseModel):
    id: str
    name: str
    type: ModifierType
    price: float = 0.0


class CartItemIn(BaseModel):
    id: str
    name: str
    price: float = Field(ge=0)
    category: str = ""
    quantity: int = Field(default=1, ge=1)
    modifiers: List[ModifierIn] = []
    description: Optional[str] = None
    image: Optional[str] = None

    def to_cart_item(self) -> CartItem:
        return CartItem.from_dict(self.model_dump(mode="json"))


# ---------- Checkout ----------
class DiscountIn(BaseModel):
    type: DiscountType
    value: float

    def to_discount(self) -> OrderDiscount:
        return OrderDiscount(type=self.type, value=self.value)


class PaymentSplitIn(BaseModel):
    cash_amount: float
    card_amount: float

    def to_split(self) -> PaymentSplit:
        return PaymentSplit(cash_amount=self.cash_amount, card_amount=self.card_amount)


class CustomerIn(BaseModel):
    phone: str
    name: str
    address: Optional[str] = None

    def to_info(self) -> CustomerInfo:
        return CustomerInfo(phone=self.phone, name=self.name, address=self.address)


class OrderCreate(BaseModel):
    items: List[CartItemIn]
    payment_method: PaymentMethod
    customer_name: Optional[str] = None
    customer: Optional[CustomerIn] = None
    discount: Optional[DiscountIn] = None
    split: Optional[PaymentSplitIn] = None
    cash_received: Optional[float] = None


# ---------- Mutations ----------
class OrderItemIn(BaseModel):
    id: str
    type: ItemType = ItemType.OTHER
    name: str
    name_ar: Optional[str] = None
    quantity: int
    unit_price: float = Field(ge=0)
    total_price: Optional[float] = None
    details: Dict[str, Any] = {}

    def to_order_item(self) -> OrderItem:
        return OrderItem.from_dict(self.model_dump(mode="json"))


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class OrderModify(BaseModel):
    customer_name: Optional[str] = None
    items: Optional[List[OrderItemIn]] = None
    total_amount: Optional[float] = None
    payment_method: Optional[PaymentMethod] = None
    split: Optional[PaymentSplitIn] = None
    modification_type: Optional[ModificationType] = None


# ---------- Event discount ----------
class EventDiscountIn(BaseModel):
    percentage: float
    event_name: str
