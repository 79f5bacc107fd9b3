from flask import current_app
import resend

from app.config import RESEND_API_KEY, RESEND_FROM_EMAIL, ADMIN_EMAILS_RAW

# Comma-separated list of operator emails, e.g. "ops@uniclimb.org,other@uni.edu"
ADMIN_EMAILS = {
    e.strip().lower()
    for e in ADMIN_EMAILS_RAW.split(",")
    if e.strip()
}

if RESEND_API_KEY:
    resend.api_key = RESEND_API_KEY


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def send_ledger_sync_alert(recipients, climber_id: str, boulder_id: int, request_id: int):
    """
    Tell operators an approval was recorded but the climber's attempt
    could not be marked validated.

    - If RESEND_API_KEY is not set, just log (local dev).
    - Delivery failures are logged, never raised.
    """
    to = sorted({normalize_email(e) for e in (recipients or []) if normalize_email(e)} | ADMIN_EMAILS)
    summary = f"request={request_id} climber={climber_id} boulder={boulder_id}"

    if not to:
        current_app.logger.error("[LEDGER SYNC ALERT] no recipients configured :: %s", summary)
        return

    # Dev / fallback path
    if not RESEND_API_KEY or not RESEND_FROM_EMAIL:
        current_app.logger.error("[LEDGER SYNC ALERT - DEV ONLY] %s -> %s", ", ".join(to), summary)
        return

    html = f"""
      <div style="font-family: system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; padding: 16px;">
        <p>A validation was approved but the climber's attempt could not be marked as validated.</p>
        <p style="font-family: monospace;">{summary}</p>
        <p>Run the reconcile action from the admin API to apply it.</p>
      </div>
    """

    try:
        params = {
            "from": RESEND_FROM_EMAIL,
            "to": to,
            "subject": "Validation approved but score not updated",
            "html": html,
        }
        resend.Emails.send(params)
        current_app.logger.info("[LEDGER SYNC ALERT] Sent alert to %s", ", ".join(to))
    except Exception as e:
        # Don't crash the approval if email fails; just log it.
        current_app.logger.error("[LEDGER SYNC ALERT] Failed to send via Resend: %s", e)
