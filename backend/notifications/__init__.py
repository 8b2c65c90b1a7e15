"""
Digest notifications.

This module handles:
- Rendering and sending digest emails via Resend
- Signed links that open a digest without logging in
- Writing error reports for failed sends
"""

from .email_sender import send_digest_email
from .digest_tokens import generate_digest_token, validate_digest_token
from .error_logger import log_repetition_error

__all__ = [
    'send_digest_email',
    'generate_digest_token',
    'validate_digest_token',
    'log_repetition_error',
]
