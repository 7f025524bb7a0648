"""
Email Templates

Renders the subject and HTML body for each notification type. Every
user-supplied value is escaped. Codes are embedded verbatim.
"""

from collections.abc import Mapping
from html import escape
from typing import Any

from civic_portal.core.config import settings

_STYLE = """
        <style>
            body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
            .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
            .header { color: #1d4ed8; margin-bottom: 24px; }
            .code-box { background-color: #dbeafe; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0; }
            .code { font-size: 32px; font-weight: bold; color: #1d4ed8; letter-spacing: 6px; }
            .reason-box { background-color: #fef2f2; border: 1px solid #fecaca; padding: 16px; border-radius: 8px; margin: 16px 0; }
            .details { background-color: #f9fafb; border: 1px solid #e5e7eb; padding: 16px; border-radius: 8px; margin: 16px 0; }
            .button { display: inline-block; color: white; padding: 12px 24px; text-decoration: none; border-radius: 8px; margin: 8px 8px 8px 0; }
            .approve { background-color: #16a34a; }
            .reject { background-color: #dc2626; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
        </style>
"""

_PURPOSE_LABELS = {
    "login": "sign in",
    "registration": "complete your registration",
    "password_reset": "reset your password",
    "approval_activation": "activate your account",
}


def _layout(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <title>{title}</title>
{_STYLE}
    </head>
    <body>
        <div class="container">
            {body}
            <div class="footer">
                <p>Civic Portal - Citizen Services</p>
            </div>
        </div>
    </body>
    </html>
    """


def render_otp(data: Mapping[str, Any]) -> tuple[str, str]:
    code = str(data["code"])
    purpose_label = _PURPOSE_LABELS.get(str(data.get("purpose", "")), "continue")
    minutes = int(data.get("expires_in_minutes", settings.otp_expiry_minutes))

    body = f"""
            <h1 class="header">Your verification code</h1>
            <p>Use the code below to {escape(purpose_label)}:</p>
            <div class="code-box"><div class="code">{escape(code)}</div></div>
            <p><strong>This code expires in {minutes} minutes</strong> and can only be used once.</p>
            <p>If you did not request this code, you can safely ignore this email.</p>
    """
    return f"Verification code - {code}", _layout("Verification code", body)


def render_approval(data: Mapping[str, Any]) -> tuple[str, str]:
    code = str(data["activation_code"])
    username = escape(str(data.get("username", "")))
    role_label = escape(str(data.get("role_label", "")))
    login_url = f"{settings.frontend_url}/login"

    body = f"""
            <h1 class="header">Registration approved</h1>
            <p>Hello <strong>{username}</strong>,</p>
            <p>Your registration request as <strong>{role_label}</strong> has been approved.</p>
            <div class="code-box">
                <p>Your activation code</p>
                <div class="code">{escape(code)}</div>
            </div>
            <ol>
                <li>Sign in at <a href="{login_url}">{login_url}</a> with your email</li>
                <li>Enter the activation code above</li>
                <li>Complete your profile</li>
            </ol>
    """
    return "Registration approved - your 4-digit activation code", _layout(
        "Registration approved", body
    )


def render_rejection(data: Mapping[str, Any]) -> tuple[str, str]:
    username = escape(str(data.get("username", "")))
    reason = data.get("reason")
    reason_html = (
        f"""
            <div class="reason-box">
                <p><strong>Reason:</strong></p>
                <p>{escape(str(reason))}</p>
            </div>
        """
        if reason
        else ""
    )

    body = f"""
            <h1 class="header">Update on your registration request</h1>
            <p>Hello <strong>{username}</strong>,</p>
            <p>We are unable to approve your registration request at this time.</p>
            {reason_html}
            <p>You may submit a new request once the points above have been addressed.</p>
    """
    return "Your registration request was not approved", _layout("Registration update", body)


def render_admin_notification(data: Mapping[str, Any]) -> tuple[str, str]:
    username = escape(str(data["username"]))
    role_label = escape(str(data.get("role_label", "")))
    email = escape(str(data.get("email", "")))
    external_id = escape(str(data.get("external_id", "")))
    approve_url = escape(str(data["approve_url"]), quote=True)
    reject_url = escape(str(data["reject_url"]), quote=True)

    body = f"""
            <h1 class="header">New registration request</h1>
            <div class="details">
                <p><strong>Username:</strong> {username}</p>
                <p><strong>Email:</strong> {email}</p>
                <p><strong>Account type:</strong> {role_label}</p>
                <p><strong>National ID / registration no.:</strong> {external_id}</p>
            </div>
            <p>Review the request in the admin panel, or act on it directly:</p>
            <a href="{approve_url}" class="button approve">Approve</a>
            <a href="{reject_url}" class="button reject">Reject</a>
            <p style="font-size: 14px; color: #6b7280;">These links work once, while the request is still pending.</p>
    """
    return f"New registration request - {data.get('role_label', '')} - {data['username']}", _layout(
        "New registration request", body
    )
