"""
Email templates for the Daily Hold Plank Challenge.

Inline CSS only, since most mail clients strip <style> blocks. Every
template returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

APP_NAME = "Daily Hold Plank Challenge"

BG_PAGE = "#0F172A"
BG_CARD = "#1E293B"
TEAL = "#14B8A6"
TEXT_PRIMARY = "#F8FAFC"
TEXT_SECONDARY = "#94A3B8"
BORDER = "#334155"

SIGNATURE = "-- The Plank Challenge Team"


def _layout(content: str) -> str:
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 22px; font-weight: 700; color: {TEAL};">{APP_NAME}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 36px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this because your company joined the {APP_NAME}.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {TEAL}; border-radius: 8px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 14px 32px; color: #FFFFFF; font-size: 16px; font-weight: 600; text-decoration: none;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def _paragraph(text: str) -> str:
    return f'<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">{text}</p>'


def welcome_email(full_name: str | None, company_name: str | None, dashboard_url: str) -> tuple[str, str, str]:
    """Sent after registration."""
    name = full_name or "there"
    company = company_name or "your company"
    subject = f"Welcome to the {APP_NAME}"
    content = (
        f'<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; margin: 0 0 16px 0;">Welcome aboard!</h1>'
        + _paragraph(f"Hi {escape(name)},")
        + _paragraph(
            f"You have joined the challenge with <strong>{escape(company)}</strong>. "
            "Log a plank every day, climb the milestones and help your company "
            "reach Bronze, Silver, Gold and Platinum."
        )
        + _button(dashboard_url, "Log your first plank")
    )
    text_body = (
        f"Hi {name},\n\n"
        f"You have joined the {APP_NAME} with {company}.\n"
        f"Log your first plank here:\n\n{dashboard_url}\n\n"
        f"{SIGNATURE}"
    )
    return subject, _layout(content), text_body


def password_reset(reset_url: str, expires_minutes: int = 60) -> tuple[str, str, str]:
    """Password reset link."""
    subject = "Reset your password"
    expiry = "1 hour" if expires_minutes == 60 else f"{expires_minutes} minutes"
    content = (
        f'<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; margin: 0 0 16px 0;">Reset your password</h1>'
        + _paragraph("We received a request to reset your password. Choose a new one below.")
        + _button(reset_url, "Reset Password")
        + _paragraph(f"This link expires in {expiry}. If you did not ask for a reset, ignore this email.")
        + f'<p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 0;">'
        f'<a href="{reset_url}" style="color: {TEAL}; word-break: break-all;">{reset_url}</a></p>'
    )
    text_body = (
        f"Reset your password\n\n"
        f"Open this link to choose a new password:\n\n{reset_url}\n\n"
        f"This link expires in {expiry}. If you did not ask for a reset, "
        f"your password stays unchanged.\n\n"
        f"{SIGNATURE}"
    )
    return subject, _layout(content), text_body


def password_changed(full_name: str | None) -> tuple[str, str, str]:
    """Confirmation after a successful reset."""
    name = full_name or "there"
    subject = "Your password has been changed"
    content = (
        f'<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; margin: 0 0 16px 0;">Password changed</h1>'
        + _paragraph(f"Hi {escape(name)},")
        + _paragraph(
            "Your password was changed and every other session was signed out. "
            "If this was not you, contact your challenge administrator."
        )
    )
    text_body = (
        f"Hi {name},\n\n"
        f"Your password was changed and every other session was signed out.\n"
        f"If this was not you, contact your challenge administrator.\n\n"
        f"{SIGNATURE}"
    )
    return subject, _layout(content), text_body
