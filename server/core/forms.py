# server/core/forms.py

from dataclasses import dataclass


# Display names of the form fields, used in validation messages.
DISPLAY_NAMES = {
    "UserName": "用户名",
    "Password": "密码",
    "Confirmpassword": "再次输入密码",
}

PASSWORD_MISMATCH = "两次密码不一致"


@dataclass
class FieldError:
    """An error attached to one form field, or to the whole form when field is ""."""
    field: str
    message: str


@dataclass
class RegistrationRequest:
    user_name: str = ""
    password: str = ""
    confirm_password: str = ""


@dataclass
class LoginRequest:
    user_name: str = ""
    password: str = ""


def _required(field_name: str, value: str | None) -> list[FieldError]:
    if value is None or not value.strip():
        return [FieldError(field_name, f"请输入{DISPLAY_NAMES[field_name]}")]
    return []


def validate_registration(request: RegistrationRequest) -> list[FieldError]:
    errors = _required("UserName", request.user_name)
    if (request.password or "") != (request.confirm_password or ""):
        errors.append(FieldError("Confirmpassword", PASSWORD_MISMATCH))
    return errors


def validate_login(request: LoginRequest) -> list[FieldError]:
    return _required("UserName", request.user_name) + _required("Password", request.password)
