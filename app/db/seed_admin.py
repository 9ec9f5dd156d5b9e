"""
Seed script to create the first ADMIN user.

Run once with env set:
  BOOTSTRAP_ADMIN_USERNAME=admin
  BOOTSTRAP_ADMIN_PASSWORD=YourSecurePassword

Also called on application startup; does nothing when the variables are not
set. An existing user with that username is promoted to ADMIN and gets the
configured password.
"""
import asyncio
import logging
import uuid

from app.auth.store import CredentialVerifier, IdentityStore
from app.core.config import settings
from app.core.enums import UserRole
from app.core.schemas import UserRecord

logger = logging.getLogger(__name__)


async def seed_admin(identity_store: IdentityStore, verifier: CredentialVerifier) -> None:
    username = settings.bootstrap_admin_username
    password = settings.bootstrap_admin_password
    if not username or not password:
        logger.info("No bootstrap admin username/password; skipping admin seed.")
        return

    password_hash = await verifier.hash(password)
    existing = await identity_store.find_by_username(username)
    if existing is None:
        user = UserRecord(id=uuid.uuid4(), username=username, password_hash=password_hash, role=UserRole.ADMIN)
        await identity_store.save(user)
        logger.info("Created ADMIN user: %s", username)
    else:
        await identity_store.save(
            existing.model_copy(update={"role": UserRole.ADMIN, "password_hash": password_hash})
        )
        logger.info("Updated existing user to ADMIN: %s", username)


async def main() -> None:
    from app.auth.store import BcryptCredentialVerifier, SqlAlchemyIdentityStore
    from app.core.logging_config import setup_logging
    from app.db.session import AsyncSessionLocal, create_tables

    setup_logging(settings.log_level)
    await create_tables()
    await seed_admin(SqlAlchemyIdentityStore(AsyncSessionLocal), BcryptCredentialVerifier())


if __name__ == "__main__":
    asyncio.run(main())
