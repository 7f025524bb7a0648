"""
Quick-Action HTML Pages

Pages rendered by the email-link endpoint. Anyone holding the link can
reach them, so failure pages stay generic and never include exception
text.
"""

from html import escape

_STYLE = """
        body { font-family: system-ui, -apple-system, sans-serif; background: #f3f4f6; color: #1f2937; }
        .card { max-width: 520px; margin: 80px auto; background: white; padding: 32px; border-radius: 12px;
                box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1); text-align: center; }
        .ok { color: #16a34a; }
        .warn { color: #d97706; }
        .err { color: #dc2626; }
        .code { font-size: 32px; font-weight: bold; letter-spacing: 6px; color: #1d4ed8;
                background: #dbeafe; padding: 16px; border-radius: 8px; margin: 16px 0; }
        .reason { background: #fef2f2; border: 1px solid #fecaca; padding: 12px; border-radius: 8px; }
"""


def _page(title: str, tone: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{escape(title)}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="card">
        <h1 class="{tone}">{escape(title)}</h1>
        {body}
    </div>
</body>
</html>"""


def approved_page(username: str, activation_code: str, email_sent: bool) -> str:
    delivery = (
        "The activation code has been emailed to the applicant."
        if email_sent
        else "The activation email could not be sent. Please share this code with the applicant."
    )
    body = f"""
        <p>The registration for <strong>{escape(username)}</strong> has been approved.</p>
        <div class="code">{escape(activation_code)}</div>
        <p>{delivery}</p>
    """
    return _page("Registration approved", "ok", body)


def rejected_page(username: str, reason: str) -> str:
    body = f"""
        <p>The registration for <strong>{escape(username)}</strong> has been rejected.</p>
        <div class="reason"><strong>Reason:</strong> {escape(reason)}</div>
    """
    return _page("Registration rejected", "warn", body)


def already_processed_page() -> str:
    body = """
        <p>This request has already been processed, or it no longer exists.</p>
        <p>Open the admin panel to see its current status.</p>
    """
    return _page("Already processed", "warn", body)


def invalid_link_page() -> str:
    body = """
        <p>This action link is invalid or incomplete.</p>
        <p>Use the admin panel to review the request.</p>
    """
    return _page("Invalid link", "err", body)


def failure_page() -> str:
    body = """
        <p>The action could not be completed. No decision was recorded.</p>
        <p>Please try again later or use the admin panel.</p>
    """
    return _page("Something went wrong", "err", body)
