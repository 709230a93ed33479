from __future__ import annotations
import re, secrets, time
from typing import Optional, Tuple

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_PHONE_JUNK = re.compile(r"[\s\-().]")


def to_base36(n: int) -> str:
    if n < 0:
        raise ValueError("negative")
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def generate_search_id() -> str:
    """ds_<ms timestamp in base36>_<6 random base36 chars>"""
    ts = to_base36(int(time.time() * 1000))
    rnd = "".join(secrets.choice(_B36) for _ in range(6))
    return f"ds_{ts}_{rnd}"


def normalize_phone(phone: str) -> str:
    return _PHONE_JUNK.sub("", phone or "")


def split_location(raw: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """'City, Region, Country' -> (city, country); a single token is the city."""
    if not raw:
        return None, None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) >= 2:
        return parts[0], parts[-1]
    return raw, None
