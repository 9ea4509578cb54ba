"""Resolution of the user that authors automatic order notes"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.users.repository import UserRepository
from ..models import UserRole

logger = logging.getLogger(__name__)


def resolve_system_actor_id(db: Session, configured_id: Optional[int] = None) -> Optional[int]:
    """
    Resolve the system actor once per scheduler

    Uses the configured user if it exists, otherwise the first ADMIN user.
    Returns None when no candidate exists; automatic notes are then skipped.
    """
    if configured_id is not None:
        user = UserRepository.get_user(db, configured_id)
        if user:
            logger.info(f"🤖 System actor: configured user {user.id}")
            return user.id
        logger.warning(f"⚠️ Configured SYSTEM_ACTOR_ID {configured_id} not found, falling back to first admin")

    admin = UserRepository.find_first_user_by_role(db, UserRole.ADMIN.value)
    if admin:
        logger.info(f"🤖 System actor: admin user {admin.id}")
        return admin.id

    logger.warning("⚠️ No system actor available - automatic order notes will be skipped")
    return None
