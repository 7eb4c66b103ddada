from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.user import UserModel
from marketplace.domain.errors import NotFoundError, TransactionFailure
from marketplace.domain.schemas import UserCreate, UserRead
from marketplace.repos.user_repo import UserRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Local identity records, credentials live in the auth service."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        try:
            user = self.repo.add(UserModel(id=payload.id, name=payload.name, role=payload.role.value))
            self.repo.commit()
        except IntegrityError:
            # registered concurrently under the same id
            self.repo.rollback()
            return UserRead.model_validate(self.repo.get_user(payload.id))
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Creating user {payload.id} failed: {e}")
            raise TransactionFailure("Failed to create user") from e

        logger.info(f"Registered user {user.id} as {user.role}")
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)
        return UserRead.model_validate(user)
