"""HTML bodies for transactional auth emails."""

from __future__ import annotations

from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{% block title %}{% endblock %}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(to right, #4CAF50, #45a049); padding: 20px; text-align: center;">
    <h1 style="color: white; margin: 0;">{{ self.title() }}</h1>
  </div>
  <div style="background-color: #f9f9f9; padding: 20px; border-radius: 0 0 5px 5px;">
{% block body %}{% endblock %}
    <p>Best regards,<br>{{ sender_name }}</p>
  </div>
</body>
</html>
"""

_VERIFICATION = """{% extends "layout.html" %}
{% block title %}Verify Your Email{% endblock %}
{% block body %}
    <p>Hello,</p>
    <p>Thank you for signing up! Your verification code is:</p>
    <div style="text-align: center; margin: 30px 0;">
      <span style="font-size: 32px; font-weight: bold; letter-spacing: 5px; color: #4CAF50;">{{ verification_code }}</span>
    </div>
    <p>Enter this code on the verification page to complete your registration.</p>
    <p>This code will expire in 24 hours for security reasons.</p>
    <p>If you didn't create an account with us, please ignore this email.</p>
{% endblock %}
"""

_PASSWORD_RESET_REQUEST = """{% extends "layout.html" %}
{% block title %}Password Reset{% endblock %}
{% block body %}
    <p>Hello,</p>
    <p>We received a request to reset your password. If you didn't make this request, please ignore this email.</p>
    <p>To reset your password, click the button below:</p>
    <div style="text-align: center; margin: 30px 0;">
      <a href="{{ reset_url }}" style="background-color: #4CAF50; color: white; padding: 12px 20px; text-decoration: none; border-radius: 5px; font-weight: bold;">Reset Password</a>
    </div>
    <p>This link will expire in 30 minutes for security reasons.</p>
{% endblock %}
"""

_PASSWORD_RESET_SUCCESS = """{% extends "layout.html" %}
{% block title %}Password Reset Successful{% endblock %}
{% block body %}
    <p>Hello,</p>
    <p>We're writing to confirm that your password has been successfully reset.</p>
    <p>If you did not initiate this password reset, please contact our support team immediately.</p>
    <p>For security reasons, we recommend that you use a strong password you don't use on other sites.</p>
{% endblock %}
"""

_WELCOME = """{% extends "layout.html" %}
{% block title %}Welcome to {{ company_name }}{% endblock %}
{% block body %}
    <p>Hello {{ name }},</p>
    <p>Your email is verified and your account is ready to use.</p>
{% endblock %}
"""

VERIFICATION_EMAIL_TEMPLATE = "verification.html"
PASSWORD_RESET_REQUEST_TEMPLATE = "password_reset_request.html"
PASSWORD_RESET_SUCCESS_TEMPLATE = "password_reset_success.html"
WELCOME_EMAIL_TEMPLATE = "welcome.html"

TEMPLATE_ENV = Environment(
    loader=DictLoader(
        {
            "layout.html": _LAYOUT,
            VERIFICATION_EMAIL_TEMPLATE: _VERIFICATION,
            PASSWORD_RESET_REQUEST_TEMPLATE: _PASSWORD_RESET_REQUEST,
            PASSWORD_RESET_SUCCESS_TEMPLATE: _PASSWORD_RESET_SUCCESS,
            WELCOME_EMAIL_TEMPLATE: _WELCOME,
        }
    ),
    autoescape=select_autoescape(["html", "xml"]),
    undefined=StrictUndefined,
)


def render_email(template_name: str, **context: Any) -> str:
    """Render a named email template; every value is HTML-escaped."""
    return TEMPLATE_ENV.get_template(template_name).render(**context)
