"""SQLAlchemy implementation of UserDirectoryPort."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ...database import run_in_session
from ...domain.exports.ports import UserDirectoryPort, UserRecord
from ...models.user import User


class SqlAlchemyUserDirectory(UserDirectoryPort):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def find_user(self, company_id: str, user_id: str) -> Optional[UserRecord]:
        """Look up a user inside the tenant; users of other tenants are invisible."""
        def _find(session: Session) -> Optional[UserRecord]:
            user = session.scalar(
                select(User).where(User.id == user_id, User.company_id == company_id)
            )
            if user is None:
                return None
            return UserRecord(
                id=user.id,
                company_id=user.company_id,
                role=user.role,
                is_active=bool(user.is_active),
            )

        return await run_in_session(self._session_factory, _find)
