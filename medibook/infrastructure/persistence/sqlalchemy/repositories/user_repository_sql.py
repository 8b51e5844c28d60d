from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto, DuplicateEmail

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            name=user.name,
            email=user.email,
            password_hash=user.password,
            image=user.image,
            phone=user.phone,
            address=dict(user.address or {}),
            gender=user.gender,
            dob=user.dob,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def _get(self, user_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.id == user_id)).first()

    def get_by_email(self, email: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.email == email)).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self._get(user_id)
        return self._to_dto(user) if user else None

    def create(self, name: str, email: str, password_hash: str) -> UserDto:
        user = User(name=name, email=email, password=password_hash)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEmail(email)
        self.session.refresh(user)
        return self._to_dto(user)

    def update_profile_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        user = self._get(user_id)
        if not user:
            return
        for name, value in fields.items():
            setattr(user, name, value)
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEmail(fields.get("email", ""))

    def set_image(self, user_id: str, image_url: Optional[str]) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.image = image_url
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(User)).one()
