import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any
from fastapi import HTTPException

from ..ports.user_repo import UserRepository, UserDto, DuplicateEmail
from ..ports.audit_logger import AuditLogger
from ...utils import hash_password, verify_password, create_jwt_token
from .validation import require_fields, normalize_email, check_password, parse_address, check_date_of_birth

logger = logging.getLogger(__name__)

ROLE_USER = "user"


@dataclass
class AccountService:
    user_repo: UserRepository
    audit: Optional[AuditLogger] = None

    def _audit(self, action: str, email: Optional[str], subject_id: Optional[str] = None, success: bool = True) -> None:
        if self.audit:
            self.audit.log(action, email=email, subject_id=subject_id, success=success)

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> str:
        """Create a patient account and return a session token for it."""
        require_fields(name=name, email=email, password=password)
        email = normalize_email(email)
        check_password(password)

        if self.user_repo.get_by_email(email):
            self._audit("register", email, success=False)
            raise HTTPException(status_code=400, detail="User already exists")
        try:
            user = self.user_repo.create(name.strip(), email, hash_password(password))
        except DuplicateEmail:
            # Lost a race with a concurrent registration for the same email
            self._audit("register", email, success=False)
            raise HTTPException(status_code=400, detail="User already exists")

        logger.info(f"Registered user {user.id}")
        self._audit("register", email, subject_id=user.id)
        return create_jwt_token(user.id, ROLE_USER)

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, UserDto]:
        require_fields(email=email, password=password)
        email = normalize_email(email)
        check_password(password)

        user = self.user_repo.get_by_email(email)
        if not user:
            self._audit("login", email, success=False)
            raise HTTPException(status_code=400, detail="User not found")
        if not verify_password(password, user.password_hash):
            self._audit("login", email, subject_id=user.id, success=False)
            raise HTTPException(status_code=400, detail="Password is incorrect")

        self._audit("login", email, subject_id=user.id)
        return create_jwt_token(user.id, ROLE_USER), user

    def get_profile(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[Any] = None,
        dob: Optional[str] = None,
        gender: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> UserDto:
        fields: Dict[str, Any] = {}
        if name:
            fields["name"] = name.strip()
        if phone:
            fields["phone"] = phone.strip()
        if email:
            email = normalize_email(email)
            owner = self.user_repo.get_by_email(email)
            if owner and owner.id != user_id:
                raise HTTPException(status_code=400, detail="Email is already in use")
            fields["email"] = email
        parsed_address = parse_address(address)
        if parsed_address is not None:
            fields["address"] = parsed_address
        dob = check_date_of_birth(dob)
        if dob:
            fields["dob"] = dob
        if gender:
            fields["gender"] = gender.strip()

        if not fields and not image_url:
            raise HTTPException(status_code=400, detail="All fields are required")

        self.get_profile(user_id)
        if fields:
            try:
                self.user_repo.update_profile_fields(user_id, fields)
            except DuplicateEmail:
                raise HTTPException(status_code=400, detail="Email is already in use")
        if image_url:
            self.user_repo.set_image(user_id, image_url)
        return self.get_profile(user_id)
