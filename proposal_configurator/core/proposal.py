from __future__ import annotations

import base64
import os
import secrets
import urllib.parse
from datetime import datetime, timedelta, timezone
from typing import Optional

from . import catalog
from .crypto import CryptoError, open_token, seal_token
from .models import ClientData, ProposalSnapshot, QuoteRequest, QuoteResult

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_proposal_id(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    stamp = _base36(int(moment.timestamp() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"PROP-{stamp}-{suffix}".upper()


def format_brl(value: float) -> str:
    """R$ com agrupamento pt-BR: 1234.5 -> 'R$ 1.234,50'."""
    amount = float(value or 0)
    raw = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {raw}"


def build_snapshot(
    request: QuoteRequest,
    result: QuoteResult,
    client: Optional[ClientData] = None,
    stripe_checkout_url: Optional[str] = None,
    pix_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ProposalSnapshot:
    created_at = now or datetime.now(timezone.utc)
    return ProposalSnapshot(
        proposal_id=generate_proposal_id(created_at),
        created_at=created_at,
        valid_until=created_at + timedelta(days=catalog.PROPOSAL_VALIDITY_DAYS),
        client=client or ClientData(),
        request=request,
        result=result,
        stripe_checkout_url=(stripe_checkout_url or "").strip() or None,
        pix_key=(pix_key or os.getenv("PIX_KEY", "")).strip() or None,
    )


def encode_snapshot(snapshot: ProposalSnapshot) -> str:
    raw = snapshot.model_dump_json()
    token = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")
    return seal_token(token)


def decode_snapshot(token: str | None) -> ProposalSnapshot | None:
    """Snapshot from a share token, or None when the link is unusable."""
    if not token:
        return None
    try:
        opened = open_token(token.strip())
        padded = opened + "=" * (-len(opened) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        return ProposalSnapshot.model_validate_json(raw)
    except (ValueError, CryptoError):
        return None


def share_url(token: str, base_url: str = "", view: str = "proposal") -> str:
    base = (base_url or os.getenv("APP_PUBLIC_URL", "")).strip().rstrip("/")
    query = urllib.parse.urlencode({"data": token, "view": view})
    return f"{base}/proposal?{query}"
