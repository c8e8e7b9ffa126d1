"""Logging utilities for PII redaction."""

import hashlib
from typing import Optional


def redact_email(email: Optional[str]) -> str:
    """
    Redact an email address for logging while keeping it distinguishable.

    Examples:
        >>> redact_email("user@example.com")
        'u***@example.com'
        >>> redact_email(None)
        'N/A'
    """
    if not email:
        return "N/A"

    local, sep, domain = email.partition("@")
    if not sep:
        return f"hash:{hashlib.sha256(email.encode()).hexdigest()[:6]}"

    # Short local parts would leak most of the address
    if len(local) < 3:
        return f"hash:{hashlib.sha256(email.encode()).hexdigest()[:6]}@{domain}"

    return f"{local[0]}***@{domain}"


def redact_ip(ip_address: Optional[str]) -> str:
    """
    Redact an IP address, keeping the network part.

    Examples:
        >>> redact_ip("192.168.1.100")
        '192.168.1.***'
    """
    if not ip_address:
        return "N/A"

    if "." in ip_address:
        parts = ip_address.split(".")
        if len(parts) == 4:
            return f"{parts[0]}.{parts[1]}.{parts[2]}.***"

    if ":" in ip_address:
        parts = ip_address.split(":")
        if len(parts) >= 4:
            return ":".join(parts[:3]) + ":***"

    return f"hash:{hashlib.sha256(ip_address.encode()).hexdigest()[:6]}"
