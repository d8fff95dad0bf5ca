"""Money, discount and GST arithmetic.

Every function here is total: missing or malformed numeric input is read
as zero instead of raising, so partially filled invoice forms can still be
priced. Validation belongs to whoever saves the record.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable

from .models import LineItem

_CENTS = Decimal("0.01")
_QTY_SEPARATORS = re.compile(r"[xX*×]")
_AMOUNT_NOISE = re.compile(r"[,\s₹$]")


@dataclass(slots=True)
class GstSplit:
    cgst: float
    sgst: float
    igst: float

    @property
    def inter_state(self) -> bool:
        return self.igst > 0


@dataclass(slots=True)
class LineDiscount:
    discount: float
    net: float


@dataclass(slots=True)
class QtyExpression:
    ok: bool
    value: float = 0.0
    display: str = ""


@dataclass(slots=True)
class LineAmounts:
    raw: float
    discount: float
    net: float
    gst: GstSplit
    cgst: float
    sgst: float
    igst: float
    total: float


@dataclass(slots=True)
class BillTotals:
    net: float
    cgst: float
    sgst: float
    igst: float
    bill_discount: float
    total: float

    @property
    def gst(self) -> float:
        return round2(self.cgst + self.sgst + self.igst)


def to_amount(value) -> float:
    """Coerce ``value`` to a finite float, falling back to ``0.0``."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = _AMOUNT_NOISE.sub("", str(value))
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def round2(value) -> float:
    """Round half-up to two decimal places."""
    amount = Decimal(str(to_amount(value)))
    with localcontext() as ctx:
        # room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        quantized = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    # -0.0 -> 0.0
    return float(quantized) + 0.0


def _state_code(gstin) -> str | None:
    if not gstin:
        return None
    text = str(gstin).strip().upper()
    if len(text) < 2:
        return None
    return text[:2]


def split_gst(seller_gstin, buyer_gstin, gst_percent) -> GstSplit:
    """Split a GST rate into CGST/SGST (intra-state) or IGST (inter-state).

    When either GSTIN is missing or too short to carry a state code the
    intra-state split is used.
    """
    percent = to_amount(gst_percent)
    seller_state = _state_code(seller_gstin)
    buyer_state = _state_code(buyer_gstin)
    if seller_state and buyer_state and seller_state != buyer_state:
        return GstSplit(cgst=0.0, sgst=0.0, igst=percent)
    half = percent / 2
    return GstSplit(cgst=half, sgst=half, igst=0.0)


def apply_line_discount(raw_amount, discount_type, discount_value) -> LineDiscount:
    raw = to_amount(raw_amount)
    value = to_amount(discount_value)
    kind = discount_type.strip().lower() if isinstance(discount_type, str) else ""
    if kind == "percent":
        discount = raw * value / 100
    elif kind == "amount":
        discount = value
    else:
        discount = 0.0
    discount = min(max(discount, 0.0), max(raw, 0.0))
    return LineDiscount(discount=round2(discount), net=round2(raw - discount))


def parse_qty_expression(text) -> QtyExpression:
    """Parse a quantity typed as a product, e.g. ``"5x3x2"``.

    Returns ``QtyExpression(ok=False)`` when any factor is missing,
    non-numeric or not positive; callers then fall back to a plain quantity.
    """
    if text is None:
        return QtyExpression(ok=False)
    factors = [part.strip() for part in _QTY_SEPARATORS.split(str(text))]
    if not factors or any(not part for part in factors):
        return QtyExpression(ok=False)
    product = 1.0
    for part in factors:
        try:
            number = float(part)
        except ValueError:
            return QtyExpression(ok=False)
        if math.isnan(number) or math.isinf(number) or number <= 0:
            return QtyExpression(ok=False)
        product *= number
    return QtyExpression(ok=True, value=product, display="×".join(factors))


def line_quantity(line: LineItem) -> float:
    """Quantity of a line, preferring a valid product expression."""
    if line.qty_display:
        parsed = parse_qty_expression(line.qty_display)
        if parsed.ok:
            return parsed.value
    return to_amount(line.quantity)


def compute_line(line: LineItem, seller_gstin=None, buyer_gstin=None) -> LineAmounts:
    raw = round2(line_quantity(line) * to_amount(line.rate))
    discounted = apply_line_discount(raw, line.discount_type, line.discount_value)
    split = split_gst(seller_gstin, buyer_gstin, line.gst_percent)
    cgst = round2(discounted.net * split.cgst / 100)
    sgst = round2(discounted.net * split.sgst / 100)
    igst = round2(discounted.net * split.igst / 100)
    return LineAmounts(
        raw=raw,
        discount=discounted.discount,
        net=discounted.net,
        gst=split,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        total=round2(discounted.net + cgst + sgst + igst),
    )


def compute_bill_totals(
    lines: Iterable[LineItem],
    seller_gstin=None,
    buyer_gstin=None,
    bill_discount_type=None,
    bill_discount_value=0,
) -> BillTotals:
    """Total a bill: line nets plus GST, less a bill-level discount."""
    net = cgst = sgst = igst = 0.0
    for line in lines:
        amounts = compute_line(line, seller_gstin, buyer_gstin)
        net += amounts.net
        cgst += amounts.cgst
        sgst += amounts.sgst
        igst += amounts.igst
    gross = round2(net + cgst + sgst + igst)
    bill_discount = apply_line_discount(gross, bill_discount_type, bill_discount_value)
    return BillTotals(
        net=round2(net),
        cgst=round2(cgst),
        sgst=round2(sgst),
        igst=round2(igst),
        bill_discount=bill_discount.discount,
        total=bill_discount.net,
    )


__all__ = [
    "BillTotals",
    "GstSplit",
    "LineAmounts",
    "LineDiscount",
    "QtyExpression",
    "apply_line_discount",
    "compute_bill_totals",
    "compute_line",
    "line_quantity",
    "parse_qty_expression",
    "round2",
    "split_gst",
    "to_amount",
]
