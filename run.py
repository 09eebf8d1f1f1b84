"""
Coupon platform entry point.
"""
import os
import sys
import traceback

print("[Coupons] ========================================")
print("[Coupons] Starting coupon service")
print("[Coupons] ========================================")

# Default to production for hosted deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[Coupons] Config: {config_name}")
print(f"[Coupons] PORT: {os.getenv('PORT', 'not set')}")
print(f"[Coupons] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")
print(f"[Coupons] SHOPIFY_STORE_URL: {os.getenv('SHOPIFY_STORE_URL') or 'NOT SET'}")

try:
    from couponhub import create_app
    app = create_app(config_name)
    print(f"[Coupons] App created. Routes: {len(list(app.url_map.iter_rules()))}")
except RuntimeError as e:
    print(f"[Coupons] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
