# File: app/services/notify_email.py

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from datetime import datetime
from typing import Optional

import resend

from app.core.config import settings

FROM_NAME = settings.email_from_name or "Ijwi ry'Abaturage"
FROM_ADDR = settings.email_from_address

EMAIL_REDIRECT_TO = settings.email_redirect_to
EMAIL_DOMAIN_VERIFIED = settings.email_domain_verified
EMAIL_PROVIDER = settings.email_provider.lower()

SMTP_HOST = settings.smtp_host
SMTP_PORT = settings.smtp_port
SMTP_USERNAME = settings.smtp_username
SMTP_PASSWORD = settings.smtp_password
SMTP_USE_SSL = settings.smtp_use_ssl
RESEND_API_KEY = settings.resend_api_key

log = logging.getLogger(__name__)

# ===================================================================
# BASE TEMPLATE
# ===================================================================

TPL_BASE = """
<table width="100%%" cellpadding="0" cellspacing="0" style="background:#f4f6f5;padding:24px;">
  <tr><td align="center">
    <table width="600" cellpadding="0" cellspacing="0"
           style="background:#ffffff;border-radius:8px;padding:24px;
                  font-family:Arial,Helvetica,sans-serif;color:#2c3e50;
                  border:1px solid #e5e7eb;">
      <tr>
        <td align="center" style="padding-bottom:16px;">
          <div style="font-size:20px;font-weight:700;color:#16a085;">Ijwi ry'Abaturage</div>
          <div style="margin-top:2px;font-size:12px;color:#6b7280;">Your voice matters to us</div>
        </td>
      </tr>
      <tr>
        <td style="font-size:14px;line-height:1.6;">
          %s
        </td>
      </tr>
      <tr>
        <td style="padding-top:16px;font-size:11px;color:#6b7280;line-height:1.5;border-top:1px solid #e5e7eb;">
          <div>This is an automated message from <strong>Ijwi ry'Abaturage</strong>.</div>
          {CONTACT_SECTION}
          <div style="margin-top:4px;">&copy; {YEAR} Ijwi ry'Abaturage. All rights reserved.</div>
        </td>
      </tr>
    </table>
  </td></tr>
</table>
"""

def _get_template_base():
    contact_section = ""
    if FROM_ADDR:
        contact_section = f"""
          <div style="margin-top:4px;">
            For help, contact us at
            <a href="mailto:{FROM_ADDR}" style="color:#16a085;text-decoration:none;">{FROM_ADDR}</a>.
          </div>
        """
    return TPL_BASE.replace("{CONTACT_SECTION}", contact_section).replace("{YEAR}", str(datetime.now().year))


# ===================================================================
# Transports
# ===================================================================

def _send_email_via_smtp(to_email: str, subject: str, html_content: str) -> bool:
    if not SMTP_HOST or not SMTP_USERNAME or not SMTP_PASSWORD or not FROM_ADDR:
        log.warning("SMTP is not configured; skipping email to %s", to_email)
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{FROM_NAME} <{FROM_ADDR}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        if SMTP_USE_SSL:
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=15)
        else:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=15)
            server.starttls()

        server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.send_message(msg)
        server.quit()
        return True
    except Exception as e:
        logging.error(f"Failed to send email via SMTP: {e}", exc_info=True)
        return False


def _send_email_via_resend(to_email: str, subject: str, html_content: str) -> bool:
    if not RESEND_API_KEY or not FROM_ADDR:
        log.warning("Resend is not configured; skipping email to %s", to_email)
        return False

    try:
        resend.api_key = RESEND_API_KEY
        resend.Emails.send({
            "from": f"{FROM_NAME} <{FROM_ADDR}>",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        })
        return True
    except Exception as e:
        logging.error(f"Failed to send email via Resend: {e}", exc_info=True)
        return False


def _send_email(to_email: str, subject: str, html_content: str) -> bool:
    """Send through the configured provider. Returns False instead of raising."""
    if EMAIL_PROVIDER == "resend":
        return _send_email_via_resend(to_email, subject, html_content)
    return _send_email_via_smtp(to_email, subject, html_content)


# ===================================================================
# Helpers
# ===================================================================

def _get_recipient_and_note(original_email: str) -> tuple[str, str]:
    """
    While the sending domain is unverified and EMAIL_REDIRECT_TO is set, all
    mail goes to the redirect address with the original recipient noted.
    """
    if EMAIL_DOMAIN_VERIFIED or not EMAIL_REDIRECT_TO:
        return original_email, ""

    note = f"""
    <div style="background:#fef2f2;color:#b91c1c;padding:8px 10px;border-radius:6px;
                font-size:11px;margin-bottom:12px;border:1px solid #fecaca;">
      <strong>Test mode:</strong> This email was redirected to
      <strong>{EMAIL_REDIRECT_TO}</strong> for testing.<br/>
      Original recipient: {original_email}
    </div>
    """
    return EMAIL_REDIRECT_TO, note


def _build_url(path: str) -> str:
    base = (settings.frontend_base_url or "").strip().rstrip("/")
    path = path.lstrip("/")
    if base:
        if not base.startswith("http://") and not base.startswith("https://"):
            base = f"https://{base}"
        return f"{base}/{path}" if path else base
    return f"/{path}" if path else "/"


def tracking_url(tracking_id: Optional[str] = None) -> str:
    return _build_url(f"track-complaint?id={tracking_id}" if tracking_id else "track-complaint")


def _format_link_section(link: str, link_text: str = "Open link") -> str:
    return f"""
    <div style="margin:20px 0 8px 0;text-align:center;">
      <a href="{link}"
         style="display:inline-block;padding:12px 24px;background:#16a085;color:#ffffff;
                border-radius:4px;font-weight:600;text-decoration:none;font-size:14px;">
        {link_text}
      </a>
    </div>
    <div style="margin:6px 0 0 0;font-size:11px;color:#374151;background:#f3f4f6;
                padding:8px 10px;border-radius:4px;word-break:break-all;font-family:monospace;">
      <strong>Or copy and paste this link:</strong><br/>{link}
    </div>
    """


def _deliver(to_email: str, subject: str, body: str) -> bool:
    actual_recipient, redirect_note = _get_recipient_and_note(to_email)
    html = _get_template_base() % (redirect_note + body)
    return _send_email(actual_recipient, subject, html)


# ===================================================================
# Account emails
# ===================================================================

def send_email_verification(to_email: str, token: str) -> bool:
    link = _build_url(f"verify-email?token={token}")
    body = f"""
    <p>Hello,</p>
    <p>Thank you for creating an account with <strong>Ijwi ry'Abaturage</strong>.</p>
    <p>Please verify your email address by using the link below:</p>
    {_format_link_section(link, "Verify email")}
    """
    return _deliver(to_email, "Verify your email address", body)


def send_reset_password(to_email: str, token: str) -> bool:
    link = _build_url(f"reset-password?token={token}")
    body = f"""
    <p>Hello,</p>
    <p>We received a request to reset the password for your account.</p>
    {_format_link_section(link, "Reset password")}
    <p style="margin-top:8px;font-size:12px;color:#6b7280;">
      This link is valid for <strong>60 minutes</strong>.
      If you did not request a password reset, you can ignore this email.
    </p>
    """
    return _deliver(to_email, "Reset your password", body)


# ===================================================================
# Complaint emails
# ===================================================================

def send_complaint_submitted(to_email: str, tracking_id: str, category: str) -> bool:
    body = f"""
    <h2 style="color:#2c3e50;">Complaint Submitted Successfully</h2>
    <p>Thank you for submitting your complaint to Ijwi ry'Abaturage. Your voice matters to us.</p>
    <p><strong>Tracking ID:</strong> {tracking_id}</p>
    <p><strong>Category:</strong> {category}</p>
    <p>You can track the status of your complaint using the tracking ID above:</p>
    {_format_link_section(tracking_url(tracking_id), "Track Your Complaint")}
    <p>We will notify you of any updates regarding your complaint.</p>
    """
    return _deliver(to_email, f"Complaint Submitted - Tracking ID: {tracking_id}", body)


def send_status_update(to_email: str, tracking_id: str, status: str, comment: Optional[str] = None) -> bool:
    readable_status = status.replace("_", " ").title()
    comment_html = f"<p><strong>Comment:</strong> {comment}</p>" if comment else ""
    body = f"""
    <h2 style="color:#2c3e50;">Complaint Status Update</h2>
    <p>The status of your complaint has been updated.</p>
    <p><strong>Tracking ID:</strong> {tracking_id}</p>
    <p><strong>New Status:</strong> {readable_status}</p>
    {comment_html}
    {_format_link_section(tracking_url(tracking_id), "View Complaint Details")}
    <p>Thank you for using Ijwi ry'Abaturage to help improve public services.</p>
    """
    return _deliver(to_email, f"Complaint Status Update - Tracking ID: {tracking_id}", body)


def send_complaint_resolved(to_email: str, tracking_id: str, comment: Optional[str] = None) -> bool:
    comment_html = f"<p><strong>Resolution Details:</strong> {comment}</p>" if comment else ""
    body = f"""
    <h2 style="color:#2c3e50;">Complaint Resolved</h2>
    <p>We are pleased to inform you that your complaint has been resolved.</p>
    <p><strong>Tracking ID:</strong> {tracking_id}</p>
    {comment_html}
    {_format_link_section(tracking_url(tracking_id), "View Resolution Details")}
    <p>We would appreciate your feedback on how your complaint was handled.</p>
    """
    return _deliver(to_email, f"Complaint Resolved - Tracking ID: {tracking_id}", body)


def send_complaint_rejected(to_email: str, tracking_id: str, reason: str) -> bool:
    body = f"""
    <h2 style="color:#2c3e50;">Complaint Status Update</h2>
    <p>We regret to inform you that your complaint could not be processed further.</p>
    <p><strong>Tracking ID:</strong> {tracking_id}</p>
    <p><strong>Status:</strong> Rejected</p>
    <p><strong>Reason:</strong> {reason}</p>
    {_format_link_section(tracking_url(tracking_id), "View Complaint Details")}
    <p>If you have any questions, please contact our support team.</p>
    """
    return _deliver(to_email, f"Complaint Status Update - Tracking ID: {tracking_id}", body)


def send_new_comment(to_email: str, tracking_id: str, comment: str) -> bool:
    body = f"""
    <h2 style="color:#2c3e50;">New Comment on Your Complaint</h2>
    <p>A new comment has been added to your complaint.</p>
    <p><strong>Tracking ID:</strong> {tracking_id}</p>
    <p><strong>Comment:</strong> {comment}</p>
    {_format_link_section(tracking_url(tracking_id), "View Complaint Details")}
    """
    return _deliver(to_email, f"New Comment on Your Complaint - Tracking ID: {tracking_id}", body)
