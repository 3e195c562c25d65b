from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _LastlinkModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )


class LastlinkBuyer(_LastlinkModel):
    email: Optional[str] = Field(None, alias="Email")
    name: Optional[str] = Field(None, alias="Name")


class LastlinkPurchase(_LastlinkModel):
    payment_id: Optional[str] = Field(None, alias="PaymentId")


class LastlinkData(_LastlinkModel):
    buyer: Optional[LastlinkBuyer] = Field(None, alias="Buyer")
    purchase: Optional[LastlinkPurchase] = Field(None, alias="Purchase")


class LastlinkPayload(_LastlinkModel):
    """Webhook body as delivered by Lastlink (PascalCase keys)."""

    event_id: Optional[str] = Field(None, alias="Id")
    is_test: Optional[bool] = Field(False, alias="IsTest")
    event: Optional[str] = Field(None, alias="Event")
    created_at: Optional[str] = Field(None, alias="CreatedAt")
    data: Optional[LastlinkData] = Field(None, alias="Data")

    @property
    def buyer_email(self) -> str:
        email = self.data.buyer.email if self.data and self.data.buyer else None
        return (email or "").strip().lower()

    @property
    def payment_id(self) -> Optional[str]:
        if self.data and self.data.purchase:
            return self.data.purchase.payment_id
        return None
