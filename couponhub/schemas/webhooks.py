"""
Webhook payload schemas, one per topic family.

Payloads are decoded before any field access; unknown fields are ignored and
every field the handlers read is optional, so a sparse payload decodes to
``None`` values instead of failing.
"""
import re
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Remote discount titles are "Coupon Discount ABC123"
TITLE_CODE_PATTERN = re.compile(r'Coupon Discount ([A-Z]{3}\d{3})')

DISCOUNT_TOPICS = (
    'discounts/create',
    'discounts/update',
    'discounts/delete',
    'discount_codes/create',
    'discount_codes/update',
    'discount_codes/delete',
)

ORDER_TOPICS = (
    'orders/create',
    'orders/paid',
    'orders/updated',
)


class DiscountWebhook(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: Optional[Union[int, str]] = None
    admin_graphql_api_id: Optional[str] = None
    code: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    ends_at: Optional[str] = None

    @property
    def discount_gid(self) -> Optional[str]:
        """GraphQL id of the remote discount."""
        if self.admin_graphql_api_id:
            return self.admin_graphql_api_id
        if self.id is None:
            return None
        if str(self.id).startswith('gid://'):
            return str(self.id)
        return f'gid://shopify/DiscountCodeNode/{self.id}'

    def code_from_title(self) -> Optional[str]:
        if not self.title:
            return None
        match = TITLE_CODE_PATTERN.search(self.title)
        return match.group(1) if match else None


class DiscountApplication(BaseModel):
    model_config = ConfigDict(extra='ignore')

    type: Optional[str] = None
    code: Optional[str] = None


class OrderWebhook(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: Optional[Union[int, str]] = None
    order_number: Optional[Union[int, str]] = None
    name: Optional[str] = None
    financial_status: Optional[str] = None
    discount_applications: List[DiscountApplication] = Field(default_factory=list)

    @property
    def discount_codes(self) -> List[str]:
        """Codes of discount-code applications, in payload order."""
        return [
            application.code
            for application in self.discount_applications
            if application.type == 'discount_code' and application.code
        ]


def decode_webhook_payload(topic: str, data: dict) -> Optional[BaseModel]:
    """
    Decode a JSON payload into the schema for its topic.

    Returns None for topics with no schema.

    Raises:
        pydantic.ValidationError: If the payload does not fit the schema
    """
    if topic in DISCOUNT_TOPICS:
        return DiscountWebhook.model_validate(data)
    if topic in ORDER_TOPICS:
        return OrderWebhook.model_validate(data)
    return None
