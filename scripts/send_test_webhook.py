#!/usr/bin/env python3
"""
Send signed sample Shopify webhooks to a running coupon service.

Usage:
    python scripts/send_test_webhook.py --base-url http://localhost:5000
    python scripts/send_test_webhook.py --base-url https://coupons.example.com --code ABC123 --only orders/create

Payloads are signed with SHOPIFY_WEBHOOK_SECRET (from .env) the same way
Shopify signs them, so the receiver's signature check is exercised too.
"""
import os
import sys
import json
import base64
import hashlib
import hmac
import argparse
import httpx
from dotenv import load_dotenv

load_dotenv()

DISCOUNT_GID = 'gid://shopify/DiscountCodeNode/1234567890'


def sample_webhooks(code: str) -> list:
    return [
        {
            "topic": "orders/create",
            "path": "/api/webhooks/shopify-orders",
            "payload": {
                "id": 6298275610782,
                "name": "#TEST1001",
                "order_number": 1001,
                "financial_status": "paid",
                "discount_applications": [
                    {
                        "type": "discount_code",
                        "code": code,
                        "value": "1000.0",
                        "value_type": "fixed_amount"
                    }
                ],
                "line_items": [
                    {"title": "Test Product", "quantity": 1, "price": "1299.00"}
                ]
            },
        },
        {
            "topic": "discounts/create",
            "path": "/api/webhooks/shopify",
            "payload": {
                "admin_graphql_api_id": DISCOUNT_GID,
                "title": f"Coupon Discount {code}",
                "status": "ACTIVE",
            },
        },
        {
            "topic": "discounts/update",
            "path": "/api/webhooks/shopify",
            "payload": {
                "admin_graphql_api_id": DISCOUNT_GID,
                "title": f"Coupon Discount {code}",
                "status": "EXPIRED",
            },
        },
        {
            "topic": "discounts/delete",
            "path": "/api/webhooks/shopify",
            "payload": {
                "admin_graphql_api_id": DISCOUNT_GID,
            },
        },
    ]


def sign(body: bytes, secret: str) -> str:
    return base64.b64encode(hmac.new(secret.encode('utf-8'), body, hashlib.sha256).digest()).decode('utf-8')


def send_webhook(client: httpx.Client, base_url: str, webhook: dict, secret: str) -> bool:
    body = json.dumps(webhook["payload"]).encode('utf-8')
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Topic": webhook["topic"],
    }
    if secret:
        headers["X-Shopify-Hmac-Sha256"] = sign(body, secret)

    url = f"{base_url}{webhook['path']}"
    try:
        response = client.post(url, content=body, headers=headers, timeout=30.0)
    except httpx.HTTPError as e:
        print(f"  ✗ {webhook['topic']}: {e}")
        return False

    ok = response.status_code == 200
    print(f"  {'✓' if ok else '✗'} {webhook['topic']} -> {response.status_code}")
    print(f"    {response.text[:300]}")
    return ok


def main():
    parser = argparse.ArgumentParser(description="Send signed sample Shopify webhooks")
    parser.add_argument("--base-url", default="http://localhost:5000", help="Service base URL")
    parser.add_argument("--code", default="TST123", help="Coupon code to reference in payloads")
    parser.add_argument("--only", help="Send only this topic (e.g. orders/create)")
    args = parser.parse_args()

    secret = os.getenv("SHOPIFY_WEBHOOK_SECRET", "")
    if not secret:
        print("Warning: SHOPIFY_WEBHOOK_SECRET not set, sending unsigned webhooks")

    webhooks = [w for w in sample_webhooks(args.code) if not args.only or w["topic"] == args.only]
    if not webhooks:
        print(f"Unknown topic: {args.only}")
        sys.exit(1)

    base_url = args.base_url.rstrip('/')
    print(f"Sending {len(webhooks)} webhook(s) to {base_url}")

    with httpx.Client() as client:
        results = [send_webhook(client, base_url, w, secret) for w in webhooks]

    print(f"\n{sum(results)}/{len(results)} succeeded")
    sys.exit(0 if all(results) else 1)


if __name__ == "__main__":
    main()
