import html
import logging
from datetime import datetime
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

log = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _ses_client():
    return boto3.client("ses", region_name=settings.AWS_REGION)


def build_invitation_url(invitation_id: str) -> str:
    return f"{settings.APP_BASE_URL}/invitation/{invitation_id}"


def send_email_via_ses(to_email: str, subject: str, body_html: str, body_text: str) -> dict:
    """
    Sends a message through SES.

    Returns ``{"success", "message_id", "error", "mocked"}``. When no sender is
    configured the message is logged instead of sent.
    """
    if not settings.SES_SENDER:
        log.info("[email mock] to=%s subject=%r", to_email, subject)
        return {
            "success": True,
            "message_id": f"mock-{int(datetime.now().timestamp() * 1000)}",
            "error": None,
            "mocked": True,
        }

    try:
        response = _ses_client().send_email(
            Source=settings.SES_SENDER,
            Destination={"ToAddresses": [to_email]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": body_html, "Charset": "UTF-8"},
                    "Text": {"Data": body_text, "Charset": "UTF-8"},
                },
            },
        )
    except (BotoCoreError, ClientError) as e:
        log.error("[email] failed to send to %s: %s", to_email, e)
        return {"success": False, "message_id": None, "error": str(e), "mocked": False}

    message_id = response.get("MessageId")
    log.info("[email] sent to %s (message_id=%s)", to_email, message_id)
    return {"success": True, "message_id": message_id, "error": None, "mocked": False}


def send_invitation_email(to_email: str, inviter_name: str, invitation_url: str) -> dict:
    subject = f"{inviter_name} invited you to BeHeard"
    # Profile names are free text
    safe_name = html.escape(inviter_name)
    safe_url = html.escape(invitation_url)

    body_html = f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{safe_name} invited you to BeHeard</title>
</head>
<body style="background:#f7f8fc;padding:0;margin:0;font-family:Arial,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background:#f7f8fc;padding:40px 0;">
    <tr>
      <td align="center">
        <table width="520" cellpadding="0" cellspacing="0" border="0" style="background:#fff;border-radius:24px;overflow:hidden;">
          <tr>
            <td align="center" style="padding:32px 30px 8px 30px;">
              <h2 style="font-size:28px;font-weight:bold;margin:0 0 12px 0;color:#444;">{safe_name} wants to talk</h2>
              <p style="font-size:16px;color:#666;margin:0 0 32px 0;">
                {safe_name} invited you to a guided conversation on BeHeard, a space where
                both of you can be heard and work toward understanding each other.
              </p>
              <a href="{safe_url}"
                style="background:#4F7CFF;border-radius:8px;color:#fff;text-decoration:none;display:inline-block;padding:16px 44px;font-size:20px;font-weight:bold;margin-bottom:20px;">
                Accept Invitation
              </a>
              <p style="margin:24px 0 0 0;font-size:14px;color:#bbb;">
                This invitation expires in {settings.INVITATION_EXPIRY_DAYS} days.
              </p>
            </td>
          </tr>
          <tr>
            <td align="center" style="padding:20px 0 12px 0;background:#e5e5e5;color:#bbb;font-size:14px;">
              © {datetime.now().year} BeHeard
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

    body_text = (
        f"{inviter_name} invited you to a guided conversation on BeHeard.\n"
        f"Accept the invitation here: {invitation_url}\n"
        f"This invitation expires in {settings.INVITATION_EXPIRY_DAYS} days."
    )
    return send_email_via_ses(to_email, subject, body_html, body_text)
