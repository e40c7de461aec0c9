"""
Email Service using Resend

Sends admin-account lifecycle notifications (application received, approval,
rejection, removal, institution deletion, code regeneration, reapplication).
Delivery is best effort: every function returns False on failure instead of
raising.
"""

import asyncio
import logging
from html import escape

import resend

from mosque_directory.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url

_STYLE = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #14532d; margin-bottom: 24px; }
    .button { display: inline-block; background-color: #14532d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
    .info-box { background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }
    .warning-box { background-color: #fef2f2; border: 1px solid #fecaca; padding: 16px; border-radius: 8px; margin: 16px 0; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _render(title: str, body: str) -> str:
    """Wrap a message body in the shared email layout."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Mosque Directory - Admin Portal</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Returns:
        True if the email was sent (or logged, when no API key is configured)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_application_received(
    to_email: str,
    admin_name: str,
    institution_name: str,
    is_reapplication: bool = False,
) -> bool:
    """Confirm that an application (or reapplication) is awaiting review."""
    safe_name = escape(admin_name)
    safe_institution = escape(institution_name)
    kind = "reapplication" if is_reapplication else "application"

    body = f"""
            <p>Hello {safe_name},</p>
            <p>We have received your {kind} to administer <strong>{safe_institution}</strong>.</p>
            <p>A super admin will review it shortly. You will receive an email once a decision has been made.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Your {kind} for {safe_institution} is under review",
        html_content=_render("Application Received", body),
    )


async def send_admin_approved(
    to_email: str,
    admin_name: str,
    institution_name: str,
) -> bool:
    """Notify an admin that their account was approved."""
    safe_name = escape(admin_name)
    safe_institution = escape(institution_name)
    dashboard_url = f"{FRONTEND_URL}/admin/dashboard"

    body = f"""
            <p>Hello {safe_name},</p>
            <p>Your request to administer <strong>{safe_institution}</strong> has been approved.</p>
            <p>You can now manage prayer times and institution details from your dashboard.</p>
            <a href="{dashboard_url}" class="button">Open Dashboard</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"You are now the admin of {safe_institution}",
        html_content=_render("Application Approved", body),
    )


async def send_admin_rejected(
    to_email: str,
    admin_name: str,
    reason: str,
    rejection_count: int,
    banned: bool,
) -> bool:
    """Notify an applicant that their application was rejected."""
    safe_name = escape(admin_name)
    safe_reason = escape(reason)

    if banned:
        outcome = """
            <div class="warning-box">
                <p><strong>Your account has reached the maximum number of rejections and can no longer reapply.</strong></p>
            </div>
        """
    else:
        outcome = f"""
            <p>This is rejection {rejection_count}. A super admin may allow you to reapply.</p>
        """

    body = f"""
            <p>Hello {safe_name},</p>
            <p>Unfortunately your application was not approved.</p>
            <div class="info-box">
                <p><strong>Reason:</strong> {safe_reason}</p>
            </div>
            {outcome}
    """
    return await send_email(
        to_email=to_email,
        subject="Update on your admin application",
        html_content=_render("Application Rejected", body),
    )


async def send_admin_removed(
    to_email: str,
    admin_name: str,
    institution_name: str,
    reason: str,
) -> bool:
    """Notify an admin that they were removed from their institution."""
    safe_name = escape(admin_name)
    safe_institution = escape(institution_name)
    safe_reason = escape(reason)

    body = f"""
            <p>Hello {safe_name},</p>
            <p>You have been removed as the admin of <strong>{safe_institution}</strong>.</p>
            <div class="info-box">
                <p><strong>Reason:</strong> {safe_reason}</p>
            </div>
            <p>You may reapply for an institution with a valid verification code.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Your admin access to {safe_institution} has ended",
        html_content=_render("Admin Access Removed", body),
    )


async def send_institution_deleted(
    to_email: str,
    admin_name: str,
    institution_name: str,
    reason: str,
) -> bool:
    """Notify an admin or applicant that their institution was deleted."""
    safe_name = escape(admin_name)
    safe_institution = escape(institution_name)
    safe_reason = escape(reason)

    body = f"""
            <p>Hello {safe_name},</p>
            <p><strong>{safe_institution}</strong> has been removed from the directory.</p>
            <div class="info-box">
                <p><strong>Reason:</strong> {safe_reason}</p>
            </div>
            <p>You may apply to administer another institution.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"{safe_institution} was removed from the directory",
        html_content=_render("Institution Removed", body),
    )


async def send_code_regenerated(
    to_email: str,
    admin_name: str,
    institution_name: str,
    reason: str,
) -> bool:
    """Notify an admin that their institution's verification code was replaced."""
    safe_name = escape(admin_name)
    safe_institution = escape(institution_name)
    safe_reason = escape(reason)
    validate_url = f"{FRONTEND_URL}/admin/validate-code"

    body = f"""
            <p>Hello {safe_name},</p>
            <p>The verification code for <strong>{safe_institution}</strong> has been regenerated.</p>
            <div class="info-box">
                <p><strong>Reason:</strong> {safe_reason}</p>
            </div>
            <p>Obtain the new code from your institution and enter it to restore your access.</p>
            <a href="{validate_url}" class="button">Enter New Code</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"New verification code required for {safe_institution}",
        html_content=_render("Verification Code Changed", body),
    )


async def send_reapplication_granted(
    to_email: str,
    admin_name: str,
    notes: str | None = None,
) -> bool:
    """Notify an applicant that a super admin allowed them to reapply."""
    safe_name = escape(admin_name)
    notes_html = (
        f'<div class="info-box"><p><strong>Notes:</strong> {escape(notes)}</p></div>'
        if notes
        else ""
    )
    reapply_url = f"{FRONTEND_URL}/admin/reapply"

    body = f"""
            <p>Hello {safe_name},</p>
            <p>You have been allowed to submit a new application.</p>
            {notes_html}
            <a href="{reapply_url}" class="button">Reapply</a>
    """
    return await send_email(
        to_email=to_email,
        subject="You may now reapply",
        html_content=_render("Reapplication Allowed", body),
    )
