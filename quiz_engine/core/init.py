"""
Application initialization module
Handles initial setup tasks like creating the default platform admin
"""

import logging

from sqlalchemy.orm import Session

from quiz_engine.core.config import settings
from quiz_engine.models.user import User

logger = logging.getLogger(__name__)


def init_platform_admin(db: Session) -> None:
    """
    Create the platform admin account if no admin user exists yet.

    Args:
        db: Database session
    """
    try:
        existing_admin = db.query(User).filter(User.role == "admin").first()

        if existing_admin:
            logger.info(
                f"✅ Admin user already exists (ID: {existing_admin.id}, Email: {existing_admin.email})"
            )
            return

        admin = User(
            full_name=settings.admin_default_name,
            email=settings.admin_default_email,
            role="admin",
            is_active=True,
        )

        db.add(admin)
        db.commit()
        db.refresh(admin)

        logger.info("=" * 60)
        logger.info("🎉 PLATFORM ADMIN CREATED")
        logger.info(f"ID: {admin.id}")
        logger.info(f"Email: {admin.email}")
        logger.info("Issue a token with: python main.py issue-token --user-id <ID>")
        logger.info("=" * 60)

    except Exception as e:
        logger.error(f"❌ Failed to initialize platform admin: {e}")
        db.rollback()
        raise


def initialize_application(db: Session) -> None:
    """
    Run all application initialization tasks.

    Args:
        db: Database session
    """
    logger.info("🚀 Starting application initialization...")

    init_platform_admin(db)

    logger.info("✅ Application initialization completed!")
