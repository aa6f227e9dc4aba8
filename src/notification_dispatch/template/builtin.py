"""Built-in notification templates.

Keys follow the on-disk layout accepted by :class:`JinjaTemplateRenderer`:
``{channel}/{template}.subject``, ``.txt`` and ``.html``. For push, the
``.subject`` part is the notification title.
"""

from __future__ import annotations

ACCOUNT_VERIFICATION = "account-verification"
PASSWORD_RESET = "password-reset"
GENERAL_NOTIFICATION = "general-notification"
VERIFICATION_CODE = "verification-code"

BUILTIN_TEMPLATE_NAMES = (
    ACCOUNT_VERIFICATION,
    PASSWORD_RESET,
    GENERAL_NOTIFICATION,
    VERIFICATION_CODE,
)

# ``action`` key attached to push data payloads so clients can route taps.
PUSH_ACTIONS: dict[str, str] = {
    ACCOUNT_VERIFICATION: "ACCOUNT_VERIFICATION",
    PASSWORD_RESET: "PASSWORD_RESET",
    GENERAL_NOTIFICATION: "GENERAL_NOTIFICATION",
    VERIFICATION_CODE: "VERIFICATION_CODE",
}

_EMAIL_HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
{body}
<p style="font-size: 12px; color: #777; text-align: center;">This email was sent automatically, please do not reply.</p>
</body>
</html>"""

BUILTIN_TEMPLATES: dict[str, str] = {
    # account-verification
    "email/account-verification.subject": "Verify your account",
    "email/account-verification.txt": (
        "Welcome!\n\n"
        "Hello {{ name | default('there', true) }},\n\n"
        "Thanks for signing up. To verify your account, visit this link: {{ verificationUrl }}\n\n"
        "This link expires in 24 hours.\n\n"
        "If you did not create an account, please ignore this email."
    ),
    "email/account-verification.html": _EMAIL_HTML_LAYOUT.format(
        title="Verify your account",
        body=(
            "<h1>Welcome!</h1>\n"
            "<p>Hello {{ name | default('there', true) }},</p>\n"
            "<p>Thanks for signing up. To verify your account, click the link below:</p>\n"
            '<p><a href="{{ verificationUrl }}">Verify my account</a></p>\n'
            "<p>This link expires in 24 hours.</p>\n"
            "<p>If you did not create an account, please ignore this email.</p>"
        ),
    ),
    "sms/account-verification.txt": (
        "Your verification code is: {{ code }}. It expires in 10 minutes."
    ),
    "push/account-verification.subject": "Account verification",
    "push/account-verification.txt": (
        "Your account has been created. Check your email to confirm your registration."
    ),
    # password-reset
    "email/password-reset.subject": "Reset your password",
    "email/password-reset.txt": (
        "Password reset\n\n"
        "Hello {{ name | default('there', true) }},\n\n"
        "You asked to reset your password. Your verification code is: {{ code }}\n\n"
        "This code expires in 15 minutes.\n\n"
        "If you did not request a reset, please ignore this email and secure your account."
    ),
    "email/password-reset.html": _EMAIL_HTML_LAYOUT.format(
        title="Reset your password",
        body=(
            "<h1>Password reset</h1>\n"
            "<p>Hello {{ name | default('there', true) }},</p>\n"
            "<p>You asked to reset your password. Your verification code is:</p>\n"
            '<h2 style="background-color: #f0f0f0; padding: 10px; text-align: center; '
            'font-size: 24px; letter-spacing: 5px;">{{ code }}</h2>\n'
            "<p>This code expires in 15 minutes.</p>\n"
            "<p>If you did not request a reset, please ignore this email and secure your account.</p>"
        ),
    ),
    "sms/password-reset.txt": (
        "Your password reset code is: {{ code }}. It is valid for 15 minutes. "
        "If you did not request this reset, please secure your account."
    ),
    "push/password-reset.subject": "Password reset",
    "push/password-reset.txt": (
        "Your password reset request was received. "
        "Check your email or SMS for the verification code."
    ),
    # verification-code
    "email/verification-code.subject": "Your verification code",
    "email/verification-code.txt": (
        "Your verification code is: {{ code }}. It is valid for 10 minutes. Do not share it."
    ),
    "sms/verification-code.txt": (
        "Your verification code is: {{ code }}. It is valid for 10 minutes. Do not share it with anyone."
    ),
    "push/verification-code.subject": "Verification code",
    "push/verification-code.txt": "Your verification code is: {{ code }}.",
    # general-notification
    "email/general-notification.subject": "{{ subject | default('Notification', true) }}",
    "email/general-notification.txt": "{{ text | default(message, true) | default(body, true) }}",
    "email/general-notification.html": "<p>{{ message | default(body, true) }}</p>",
    "sms/general-notification.txt": "{{ message | default(body, true) }}",
    "push/general-notification.subject": "{{ title | default(subject, true) | default('Notification', true) }}",
    "push/general-notification.txt": "{{ body | default(message, true) }}",
}
