import datetime

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserProfileFields(BaseModel):
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    patronymic_name: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=1000)
    contact_phone: str | None = Field(None, max_length=64)


class CreateUserForm(UserProfileFields):
    email: str = Field(..., min_length=3, max_length=256, pattern=EMAIL_PATTERN)
    password: str | None = Field(None, min_length=6, max_length=128)
    roles: list[str] = Field(default_factory=list)


class EditUserForm(UserProfileFields):
    id: str = Field(..., min_length=1, max_length=36)
    roles: list[str] = Field(default_factory=list)


class UserListEntry(BaseModel):
    id: str
    email: str
    email_confirmed: bool
    first_name: str | None = None
    last_name: str | None = None
    patronymic_name: str | None = None
    city: str | None = None

    model_config = {"from_attributes": True}


class UsersListView(BaseModel):
    users: list[UserListEntry]


class UserDetailResponse(UserProfileFields):
    id: str
    email: str
    email_confirmed: bool
    roles: list[str]
    created_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}
