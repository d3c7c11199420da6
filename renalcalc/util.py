# -*- coding: utf-8 -*-
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Optional, Sequence

NOT_CALCULATED = "Not calculated"


def to_float(x: Any) -> Optional[float]:
    """Best-effort conversion. Returns None for empty/invalid."""
    if x is None:
        return None
    if isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        v = float(x)
        if math.isnan(v) or math.isinf(v):
            return None
        return v
    s = str(x).strip().replace(",", ".")
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def round_fixed(v: Optional[float], decimals: int) -> Optional[float]:
    """
    Half-up rounding on the exact binary value, i.e. the digits a browser
    prints for ``v.toFixed(decimals)``. Stored results were produced that way.
    """
    if v is None:
        return None
    q = Decimal(1).scaleb(-decimals)
    with localcontext() as ctx:
        # room for every digit of the largest finite float
        ctx.prec = 330 + decimals
        return float(Decimal(v).quantize(q, rounding=ROUND_HALF_UP))


def fmt_num(v: Optional[float], decimals: int = 1) -> str:
    if v is None:
        return NOT_CALCULATED
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return NOT_CALCULATED
    return f"{v:.{decimals}f}"


def join_nonempty(parts: Sequence[str], sep: str = " | ") -> str:
    return sep.join([p for p in parts if p and str(p).strip()])
