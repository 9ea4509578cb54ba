"""User repository - lookups used to resolve the system actor"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User


class UserRepository:
    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def find_first_user_by_role(db: Session, role: str) -> Optional[User]:
        """Lowest-id user with the role, so the result is stable across runs"""
        return db.query(User).filter(User.role == role).order_by(User.id.asc()).first()
