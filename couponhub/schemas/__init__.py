"""Pydantic schemas for inbound Shopify payloads."""
from .webhooks import (
    DiscountWebhook,
    DiscountApplication,
    OrderWebhook,
    DISCOUNT_TOPICS,
    ORDER_TOPICS,
    decode_webhook_payload,
)

__all__ = [
    'DiscountWebhook',
    'DiscountApplication',
    'OrderWebhook',
    'DISCOUNT_TOPICS',
    'ORDER_TOPICS',
    'decode_webhook_payload',
]
