"""
Email sending via Resend API for repetition digests.

Handles sending one email per fired repetition rule with the notes selected
for that digest.
"""

import os
from html import escape
from typing import List, Dict, Any
import resend

from models import Digest, Note, RepetitionRule
from notifications.digest_tokens import generate_digest_token


# Initialize Resend with API key from environment
resend.api_key = os.getenv('RESEND_API_KEY')

DEFAULT_FRONTEND_BASE_URL = 'https://app.notedigest.example.com'

# Longest note excerpt shown in the email; the digest page shows full notes
PREVIEW_LENGTH = 280


def _frontend_base_url() -> str:
    return os.getenv('FRONTEND_BASE_URL', DEFAULT_FRONTEND_BASE_URL).rstrip('/')


def _build_digest_url(user_id: str, digest_uuid: str) -> str:
    """Link to the digest page, signed so it works without logging in."""
    token = generate_digest_token(user_id, digest_uuid)
    return f"{_frontend_base_url()}/digests/{digest_uuid}?token={token}"


def _prepare_note_data(notes: List[Note]) -> List[Dict[str, Any]]:
    """
    Extract and format everything the templates show for each note.

    Selection order is kept, so the email lists notes the way they were drawn.
    """
    prepared_notes = []
    for note in notes:
        body = note.body.strip()
        if len(body) > PREVIEW_LENGTH:
            preview = body[:PREVIEW_LENGTH].rstrip() + '…'
        else:
            preview = body

        if note.created_at:
            date_formatted = note.created_at.strftime('%B %d, %Y')
        else:
            date_formatted = 'Unknown date'

        prepared_notes.append({
            'preview': preview,
            'date_formatted': date_formatted,
            'note_url': f"{_frontend_base_url()}/notes/{note.uuid}",
        })

    return prepared_notes


def build_subject(rule: RepetitionRule, digest: Digest) -> str:
    """Email subject: rule title plus the digest's sequence number."""
    return f"{rule.title} #{digest.version}"


def send_digest_email(
    user_email: str,
    rule: RepetitionRule,
    digest: Digest,
    notes: List[Note],
) -> Dict[str, Any]:
    """
    Send the email for a freshly created digest.

    Args:
        user_email: Recipient email address
        rule: Rule that fired
        digest: Digest created for this firing
        notes: Notes of the digest, in selection order

    Returns:
        Dictionary with 'success' (bool), 'email_id' (str if success), 'error' (str if failed)
    """
    from_email = os.getenv('DIGEST_FROM_EMAIL', 'digests@notedigest.example.com')

    try:
        digest_url = _build_digest_url(rule.user_id, digest.uuid)
    except ValueError as e:
        return {'success': False, 'error': str(e)}

    prepared_notes = _prepare_note_data(notes)
    subject = build_subject(rule, digest)
    html_body = _build_digest_html(rule.title, prepared_notes, digest_url)
    text_body = _build_digest_text(rule.title, prepared_notes, digest_url)

    try:
        response = resend.Emails.send({
            "from": f"Note Digest <{from_email}>",
            "to": user_email,
            "subject": subject,
            "html": html_body,
            "text": text_body
        })

        return {
            'success': True,
            'email_id': response.get('id')
        }

    except Exception as e:
        return {
            'success': False,
            'error': str(e)
        }


def _build_digest_html(title: str, prepared_notes: List[Dict[str, Any]], digest_url: str) -> str:
    """
    Build HTML email body for a digest.

    Note text is user content and is escaped.
    """
    html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 600px;
            margin: 0 auto;
            padding: 20px;
            background-color: #f5f5f5;
        }}
        .container {{
            background-color: white;
            padding: 30px;
            border-radius: 8px;
        }}
        h1 {{
            margin: 0 0 20px 0;
            color: #1e40af;
            font-size: 22px;
        }}
        .note {{
            border-left: 4px solid #e5e7eb;
            padding: 12px 15px;
            margin-bottom: 16px;
            background-color: #f9fafb;
            white-space: pre-wrap;
        }}
        .note-meta {{
            color: #6b7280;
            font-size: 12px;
            margin-top: 6px;
        }}
        .footer {{
            margin-top: 30px;
            padding-top: 20px;
            border-top: 1px solid #e5e7eb;
            font-size: 13px;
            color: #6b7280;
            text-align: center;
        }}
        a {{
            color: #2563eb;
            text-decoration: none;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{escape(title)}</h1>
"""

    if not prepared_notes:
        html += """
        <p>There were no notes to review this time. Add notes to the books this digest draws from to see them here.</p>
"""

    for note in prepared_notes:
        html += f"""
        <div class="note">{escape(note['preview'])}
            <div class="note-meta">{note['date_formatted']} • <a href="{note['note_url']}">Open note</a></div>
        </div>
"""

    html += f"""
        <div class="footer">
            <p><a href="{digest_url}">View the full digest</a></p>
            <p>You received this email because you have an active repetition rule.</p>
        </div>
    </div>
</body>
</html>
"""

    return html


def _build_digest_text(title: str, prepared_notes: List[Dict[str, Any]], digest_url: str) -> str:
    """Build plain text email body for a digest."""
    text = f"""{title.upper()}

You have {len(prepared_notes)} notes to review:

"""

    for i, note in enumerate(prepared_notes, 1):
        text += f"{i}. {note['preview']}\n"
        text += f"Written: {note['date_formatted']}\n"
        text += f"Open: {note['note_url']}\n\n"
        text += "-" * 60 + "\n\n"

    text += f"""
View the full digest: {digest_url}

---
You received this email because you have an active repetition rule.
"""

    return text
