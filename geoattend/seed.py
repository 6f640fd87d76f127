"""Seed the admin account if configured and not present."""
import logging

from geoattend.config import settings
from geoattend.models.user import User, UserRole
from geoattend.security import get_password_hash

logger = logging.getLogger(__name__)


async def seed_admin():
    if not settings.admin_password:
        logger.info("ADMIN_PASSWORD not set; skipping admin seed")
        return
    existing = await User.find_one(User.roll_number == settings.admin_roll_number)
    if existing:
        return
    await User(
        roll_number=settings.admin_roll_number,
        hashed_password=get_password_hash(settings.admin_password),
        role=UserRole.ADMIN,
        full_name=settings.admin_full_name,
    ).insert()
    logger.info("Seeded admin account %s", settings.admin_roll_number)
