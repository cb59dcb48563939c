# server/core/pages.py

from html import escape

from core.forms import DISPLAY_NAMES, FieldError, LoginRequest, RegistrationRequest


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(title)}</title>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; margin: 40px; }}
        .field {{ margin: 10px 0; }}
        .field-error, .summary li {{ color: #c0392b; }}
    </style>
</head>
<body>
    <h1>{escape(title)}</h1>
{body}
</body>
</html>"""


def _summary(errors: list[FieldError]) -> str:
    form_errors = [e for e in errors if not e.field]
    if not form_errors:
        return ""
    items = "".join(f"<li>{escape(e.message)}</li>" for e in form_errors)
    return f'    <ul class="summary">{items}</ul>\n'


def _field(name: str, input_type: str, errors: list[FieldError], value: str = "") -> str:
    value_attr = f' value="{escape(value)}"' if value else ""
    messages = "".join(
        f'<span class="field-error">{escape(e.message)}</span>'
        for e in errors if e.field == name
    )
    return (
        f'        <div class="field">\n'
        f'            <label for="{name}">{DISPLAY_NAMES[name]}</label>\n'
        f'            <input id="{name}" name="{name}" type="{input_type}"{value_attr}>\n'
        f'            {messages}\n'
        f'        </div>\n'
    )


def render_register_page(form: RegistrationRequest | None = None, errors: list[FieldError] | None = None) -> str:
    form = form or RegistrationRequest()
    errors = errors or []
    body = (
        _summary(errors)
        + '    <form method="post" action="/Account/Register">\n'
        + _field("UserName", "text", errors, form.user_name)
        + _field("Password", "password", errors)
        + _field("Confirmpassword", "password", errors)
        + '        <button type="submit">注册</button>\n'
        + '    </form>'
    )
    return _page("注册", body)


def render_login_page(form: LoginRequest | None = None, errors: list[FieldError] | None = None) -> str:
    form = form or LoginRequest()
    errors = errors or []
    body = (
        _summary(errors)
        + '    <form method="post" action="/Account/Login">\n'
        + _field("UserName", "text", errors, form.user_name)
        + _field("Password", "password", errors)
        + '        <button type="submit">登录</button>\n'
        + '    </form>'
    )
    return _page("登录", body)
