"""
Coupon Store: persistence accessor over the ``coupons`` table.

All reads and writes of coupon rows go through this class. Conditional
updates (``WHERE status = 'active'``) are the only guard against concurrent
double redemption; they rely on single-statement atomicity in the database.
"""
import math
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.coupon import (
    Coupon,
    CouponStatus,
    ShopifyStatus,
    MAX_TOTAL_COUPONS,
)

SORTABLE_COLUMNS = {
    'created_date': Coupon.created_date,
    'code': Coupon.code,
    'status': Coupon.status,
    'used_date': Coupon.used_date,
    'scratched_date': Coupon.scratched_date,
}

MAX_PAGE_SIZE = 1000

USAGE_TIMEFRAMES = {
    '24h': timedelta(hours=24),
    '24 hours': timedelta(hours=24),
    '7d': timedelta(days=7),
    '7 days': timedelta(days=7),
}


class CouponStore:
    """CRUD and aggregate queries for coupons."""

    # ==================== Reads ====================

    def get_by_code(self, code: str) -> Optional[Coupon]:
        if not code:
            return None
        return Coupon.query.filter_by(code=code).first()

    def get_by_shopify_id(self, shopify_discount_id: str) -> Optional[Coupon]:
        if not shopify_discount_id:
            return None
        return Coupon.query.filter_by(shopify_discount_id=shopify_discount_id).first()

    def count(self) -> int:
        return Coupon.query.count()

    def existing_codes(self) -> set:
        return {row.code for row in db.session.query(Coupon.code).all()}

    def needing_sync(self, limit: Optional[int] = None) -> List[Coupon]:
        """Active coupons that have no remote discount yet, oldest first."""
        query = Coupon.query.filter(
            Coupon.shopify_synced.is_(False),
            Coupon.status == CouponStatus.ACTIVE.value,
        ).order_by(Coupon.id)
        if limit:
            query = query.limit(limit)
        return query.all()

    def list_coupons(
        self,
        page: int = 1,
        limit: int = MAX_PAGE_SIZE,
        sort_by: str = 'created_date',
        sort_order: str = 'desc',
        search: str = '',
    ) -> Dict[str, Any]:
        """
        Paginated coupon listing.

        Args:
            page: 1-based page number
            limit: Page size (1-1000)
            sort_by: One of SORTABLE_COLUMNS; unknown keys fall back to created_date
            sort_order: 'asc' or 'desc'
            search: Case-insensitive substring match on code, employee or location

        Returns:
            Dict with 'coupons' (Coupon list) and 'pagination' metadata
        """
        query = Coupon.query

        if search:
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(
                Coupon.code.ilike(pattern),
                Coupon.employee_code.ilike(pattern),
                Coupon.store_location.ilike(pattern),
            ))

        column = SORTABLE_COLUMNS.get(sort_by, Coupon.created_date)
        ordering = column.asc() if sort_order == 'asc' else column.desc()
        query = query.order_by(ordering, Coupon.id.desc())

        total_count = query.count()
        coupons = query.offset((page - 1) * limit).limit(limit).all()
        total_pages = math.ceil(total_count / limit) if total_count else 0

        return {
            'coupons': coupons,
            'pagination': {
                'page': page,
                'limit': limit,
                'totalCount': total_count,
                'totalPages': total_pages,
                'hasNextPage': page < total_pages,
                'hasPreviousPage': page > 1,
            },
        }

    def get_stats(self) -> Dict[str, int]:
        rows = db.session.query(Coupon.status, func.count(Coupon.id)).group_by(Coupon.status).all()
        by_status = {status: count for status, count in rows}
        total = sum(by_status.values())

        scratched = Coupon.query.filter(Coupon.is_scratched.is_(True)).count()
        synced = Coupon.query.filter(Coupon.shopify_synced.is_(True)).count()

        return {
            'total': total,
            'active': by_status.get(CouponStatus.ACTIVE.value, 0),
            'used': by_status.get(CouponStatus.USED.value, 0),
            'inactive': by_status.get(CouponStatus.INACTIVE.value, 0),
            'scratched': scratched,
            'synced': synced,
            'remaining': max(MAX_TOTAL_COUPONS - total, 0),
        }

    def get_usage_stats(self, timeframe: str = '24h', now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Redemptions per store location within a recent window.

        Online redemptions are those whose employee code mentions SHOPIFY or ORDER.
        """
        window = USAGE_TIMEFRAMES.get(timeframe, USAGE_TIMEFRAMES['7d'])
        since = (now or datetime.utcnow()) - window

        used = (
            Coupon.query
            .filter(
                Coupon.status == CouponStatus.USED.value,
                Coupon.used_date >= since,
            )
            .order_by(Coupon.used_date.desc())
            .all()
        )

        stats: Dict[str, Dict[str, int]] = {}
        for coupon in used:
            location = coupon.store_location or 'Unknown'
            entry = stats.setdefault(location, {'total': 0, 'online': 0, 'inStore': 0})
            entry['total'] += 1
            employee = (coupon.employee_code or '').upper()
            if 'SHOPIFY' in employee or 'ORDER' in employee:
                entry['online'] += 1
            else:
                entry['inStore'] += 1

        return {
            'timeframe': timeframe,
            'totalUsed': len(used),
            'stats': stats,
        }

    # ==================== Writes ====================

    def insert_code(self, code: str) -> Optional[Coupon]:
        """
        Insert one active coupon. Returns None if the code already exists.

        Each insert runs in a savepoint so a unique-constraint violation only
        discards this row.
        """
        coupon = Coupon(
            code=code,
            status=CouponStatus.ACTIVE.value,
            shopify_synced=False,
            shopify_status=ShopifyStatus.ACTIVE.value,
        )
        try:
            with db.session.begin_nested():
                db.session.add(coupon)
        except IntegrityError:
            return None
        return coupon

    def mark_used(
        self,
        code: str,
        employee_code: str,
        store_location: str,
        order_reference: Optional[str] = None,
        used_at: Optional[datetime] = None,
    ) -> bool:
        """Set status=used only if the coupon is still active and unused."""
        updated = (
            Coupon.query
            .filter(
                Coupon.code == code,
                Coupon.status == CouponStatus.ACTIVE.value,
                Coupon.used_date.is_(None),
            )
            .update({
                Coupon.status: CouponStatus.USED.value,
                Coupon.used_date: used_at or datetime.utcnow(),
                Coupon.employee_code: employee_code,
                Coupon.store_location: store_location,
                Coupon.order_reference: order_reference,
            }, synchronize_session=False)
        )
        db.session.commit()
        return updated > 0

    def mark_scratched(self, code: str, scratched_at: Optional[datetime] = None) -> bool:
        """Set is_scratched only if it is not already set."""
        updated = (
            Coupon.query
            .filter(Coupon.code == code, Coupon.is_scratched.is_(False))
            .update({
                Coupon.is_scratched: True,
                Coupon.scratched_date: scratched_at or datetime.utcnow(),
            }, synchronize_session=False)
        )
        db.session.commit()
        return updated > 0

    def mark_inactive(self, code: str, reason: str, at: Optional[datetime] = None) -> bool:
        """Set status=inactive only if the coupon is currently active."""
        updated = (
            Coupon.query
            .filter(Coupon.code == code, Coupon.status == CouponStatus.ACTIVE.value)
            .update({
                Coupon.status: CouponStatus.INACTIVE.value,
                Coupon.used_date: at or datetime.utcnow(),
                Coupon.employee_code: reason,
            }, synchronize_session=False)
        )
        db.session.commit()
        return updated > 0

    def update_shopify_sync(
        self,
        code: str,
        shopify_discount_id: Optional[str],
        synced: bool = True,
        shopify_status: str = ShopifyStatus.ACTIVE.value,
    ) -> Optional[Coupon]:
        coupon = self.get_by_code(code)
        if not coupon:
            return None
        coupon.shopify_discount_id = shopify_discount_id
        coupon.shopify_synced = synced
        coupon.shopify_status = shopify_status
        db.session.commit()
        return coupon

    def link_remote_discount(self, code: str, shopify_discount_id: str, shopify_status: str) -> bool:
        """
        Attach a remote discount to a coupon that has none yet.

        Returns False when the coupon is missing or already linked, or when
        no discount id is given.
        """
        if not shopify_discount_id:
            return False
        updated = (
            Coupon.query
            .filter(Coupon.code == code, Coupon.shopify_discount_id.is_(None))
            .update({
                Coupon.shopify_discount_id: shopify_discount_id,
                Coupon.shopify_synced: True,
                Coupon.shopify_status: shopify_status,
            }, synchronize_session=False)
        )
        db.session.commit()
        return updated > 0

    def update_shopify_status(self, code: str, shopify_status: str) -> Optional[Coupon]:
        coupon = self.get_by_code(code)
        if not coupon:
            return None
        coupon.shopify_status = shopify_status
        db.session.commit()
        return coupon


coupon_store = CouponStore()
