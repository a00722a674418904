"""Secret masking for captured command output."""

import re
from typing import Iterable, Optional

from fluxstage.constants import SECRET_PLACEHOLDER

HEX_SECRET_RE = re.compile(r"[0-9A-Fa-f]{32,}")


def redact_secrets(text: Optional[str], known_secrets: Iterable[str] = ()) -> str:
    """Replace hex runs of 32+ characters and any known secret values."""
    if not text:
        return text or ""

    for secret in known_secrets:
        if secret:
            text = text.replace(secret, SECRET_PLACEHOLDER)
    return HEX_SECRET_RE.sub(SECRET_PLACEHOLDER, text)
