"""Short identity tokens for scraped notices."""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime

from .models import format_timestamp

ID_LENGTH = 12


def fingerprint(text: str, discovered_at: datetime) -> str:
    """Return a 12 character printable id for ``text`` seen at ``discovered_at``.

    The discovery instant is part of the key, so the same notice scraped on two
    different cycles gets two different ids. Cross-cycle dedup relies on the
    text + recency check in :func:`baou_notice_bot.state.diff_new_notices`.
    """
    key = f"{text}-{format_timestamp(discovered_at)}".encode("utf-8")
    # 9 bytes encode to exactly 12 base64 characters, no padding
    digest = hashlib.blake2b(key, digest_size=9).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")[:ID_LENGTH]
