"""Human-readable request reference numbers."""
import secrets
from datetime import datetime


def generate_reference_no(now: datetime = None) -> str:
    """
    Build a reference like REQ-20250107123045123-a1b2c3.

    Millisecond UTC timestamp plus 6 random hex characters; the unique
    index on requests.reference_no is the final guard against collisions.
    """
    now = now or datetime.utcnow()
    return f"REQ-{now.strftime('%Y%m%d%H%M%S')}{now.microsecond // 1000:03d}-{secrets.token_hex(3)}"
