"""Request schemas for the auth and admin APIs."""

import re
from typing import Annotated

from pydantic import EmailStr, Field, StringConstraints, field_validator

from src.shared.schemas import CamelModel

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
ROLES = ("user", "admin")

PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]


class _EmailModel(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RegisterRequest(_EmailModel):
    password: str = Field(min_length=8)
    first_name: PersonName
    last_name: PersonName

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        if not PASSWORD_PATTERN.match(value):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, "
                "one number, and one special character"
            )
        return value


class AdminCreateRequest(_EmailModel):
    password: str = Field(min_length=8)
    first_name: PersonName
    last_name: PersonName


class LoginRequest(_EmailModel):
    password: str = Field(min_length=1)


class RoleUpdate(CamelModel):
    role: str
