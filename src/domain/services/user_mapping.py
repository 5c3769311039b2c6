from collections.abc import Sequence

from src.domain.models.entities.user import UserEntity, new_user_id
from src.domain.models.user_schemas import CreateUserForm, EditUserForm, UserProfileFields

PROFILE_FIELDS = tuple(UserProfileFields.model_fields)


def apply_profile(form: UserProfileFields, user: UserEntity) -> None:
    """Overwrite the user's profile fields with the form values."""
    for field in PROFILE_FIELDS:
        setattr(user, field, getattr(form, field))


def create_form_to_user(form: CreateUserForm) -> UserEntity:
    """New, unconfirmed user for a creation form. The email doubles as user name."""
    user = UserEntity(
        id=new_user_id(),
        email=form.email,
        user_name=form.email,
        email_confirmed=False,
    )
    apply_profile(form, user)
    return user


def user_to_edit_form(user: UserEntity, roles: Sequence[str]) -> EditUserForm:
    return EditUserForm(
        id=user.id,
        roles=list(roles),
        **{field: getattr(user, field) for field in PROFILE_FIELDS},
    )
