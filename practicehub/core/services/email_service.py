"""Outgoing e-mail over SMTP.

Configuration comes from the environment:
SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, SMTP_FROM_EMAIL,
SMTP_FROM_NAME, SMTP_USE_TLS.
"""

import os
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from core.utils.logging_config import get_logger

logger = get_logger('practicehub.core.email')


def get_smtp_config() -> dict:
    return {
        'host': os.environ.get('SMTP_HOST', ''),
        'port': int(os.environ.get('SMTP_PORT', '587') or 587),
        'use_tls': os.environ.get('SMTP_USE_TLS', 'true').lower() == 'true',
        'username': os.environ.get('SMTP_USERNAME', ''),
        'password': os.environ.get('SMTP_PASSWORD', ''),
        'from_email': os.environ.get('SMTP_FROM_EMAIL', ''),
        'from_name': os.environ.get('SMTP_FROM_NAME', 'PracticeHub'),
    }


def is_smtp_configured() -> bool:
    config = get_smtp_config()
    return bool(config['host'] and config['from_email'])


def send_email(
    to_email,
    subject: str,
    body: str,
    html: bool = False,
    cc: Optional[list] = None,
) -> tuple[bool, str]:
    """Send an e-mail.

    Args:
        to_email: Recipient address, or a list of addresses
        subject: Subject line
        body: Message body, plain text unless `html` is set
        html: Send body as text/html (a plain-text part is not generated)
        cc: Optional CC addresses

    Returns:
        (success, error_message). Never raises.
    """
    config = get_smtp_config()

    if not config['host']:
        return False, 'SMTP host not configured'
    if not config['from_email']:
        return False, 'From email not configured'

    recipients = [to_email] if isinstance(to_email, str) else list(to_email or [])
    recipients = [r.strip() for r in recipients if r and r.strip()]
    if not recipients:
        return False, 'No recipient address'

    cc_addresses = [c.strip() for c in (cc or []) if c and c.strip() and c.strip() not in recipients]

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{config['from_name']} <{config['from_email']}>" if config['from_name'] else config['from_email']
        msg['To'] = ', '.join(recipients)
        if cc_addresses:
            msg['Cc'] = ', '.join(cc_addresses)
        msg.attach(MIMEText(body or '', 'html' if html else 'plain'))

        with smtplib.SMTP(config['host'], config['port']) as server:
            if config['use_tls']:
                server.starttls(context=ssl.create_default_context())
            if config['username'] and config['password']:
                server.login(config['username'], config['password'])
            server.sendmail(config['from_email'], recipients + cc_addresses, msg.as_string())

        logger.info(f'Email sent to {recipients}, CC: {cc_addresses or "none"}')
        return True, ''

    except smtplib.SMTPAuthenticationError as e:
        error_msg = f'SMTP authentication failed: {e}'
        logger.error(error_msg)
        return False, error_msg
    except (smtplib.SMTPException, OSError) as e:
        error_msg = f'SMTP error: {e}'
        logger.error(error_msg)
        return False, error_msg
