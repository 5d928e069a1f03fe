"""Sequential invoice numbers of the form INV000001."""
from __future__ import annotations

import re
from typing import Iterable

DEFAULT_PREFIX = "INV"
DEFAULT_WIDTH = 6


def next_invoice_number(
    existing: Iterable[str], prefix: str = DEFAULT_PREFIX, width: int = DEFAULT_WIDTH
) -> str:
    """One past the highest number already issued under ``prefix``.

    Numbers issued under another prefix, or hand-typed numbers without
    digits, are ignored.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for number in existing:
        m = pattern.match((number or "").strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"
