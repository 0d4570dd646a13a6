# soulseer/utils/seed_data.py
"""
Initial data seeding
- runs at startup when SEED_ON_STARTUP is set
- makes sure an admin account exists
- syncs the JSON coupon list into the coupons table
"""
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from soulseer.core.config import settings
from soulseer.models.product import Coupon, DiscountType
from soulseer.models.user import User, UserRole

logger = logging.getLogger(__name__)


def load_coupons_from_json() -> List[dict]:
    """Always reads the current JSON file"""
    try:
        json_path = Path(__file__).parent / "seed_coupons.json"
        with open(json_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load coupon seed file: {e}")
        return []


async def get_or_create_admin(db: AsyncSession) -> User:
    """Return the first admin, creating the configured one when none exists"""
    try:
        result = await db.execute(select(User).where(User.role == UserRole.ADMIN).order_by(User.user_id))
        admin = result.scalars().first()

        if admin:
            return admin

        admin = User(
            name="admin",
            email=settings.SEED_ADMIN_EMAIL,
            password_hash=User.hash_password(settings.SEED_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
        )
        db.add(admin)
        await db.commit()
        await db.refresh(admin)
        logger.info(f"Seeded admin account {admin.email}")
        return admin

    except Exception as e:
        logger.error(f"Admin seeding failed: {e}")
        await db.rollback()
        raise


async def seed_coupons(db: AsyncSession) -> None:
    """
    New codes are added; existing codes are updated when the JSON differs
    """
    try:
        coupons_data = load_coupons_from_json()
        if not coupons_data:
            logger.warning("No coupons to seed")
            return

        result = await db.execute(select(Coupon))
        existing_map = {c.code.upper(): c for c in result.scalars().all()}

        created_count = 0
        updated_count = 0

        for data in coupons_data:
            code = data["code"].upper()
            discount_type = DiscountType(data.get("discount_type", DiscountType.PERCENTAGE.value))
            value = Decimal(str(data["value"]))

            existing = existing_map.get(code)
            if existing:
                if existing.discount_type != discount_type or existing.value != value:
                    existing.discount_type = discount_type
                    existing.value = value
                    updated_count += 1
                continue

            db.add(Coupon(code=code, discount_type=discount_type, value=value))
            created_count += 1

        await db.commit()

        if created_count > 0 or updated_count > 0:
            logger.info(f"Coupon seeding done: {created_count} added, {updated_count} updated")

    except Exception as e:
        logger.error(f"Coupon seeding failed: {e}")
        await db.rollback()
        raise


async def init_seed_data(db: AsyncSession) -> None:
    """Called from the app lifespan"""
    await get_or_create_admin(db)
    await seed_coupons(db)
