"""Indonesian display formatting for amounts shown next to the summaries."""

from __future__ import annotations


def format_rupiah(amount: float, with_symbol: bool = True) -> str:
    """
    Format an amount the way the id-ID locale renders IDR: `Rp 11.000.000`.

    Fractions are rounded away; negative amounts keep a leading minus.
    """
    rounded = int(round(amount))
    digits = f"{abs(rounded):,}".replace(",", ".")
    sign = "-" if rounded < 0 else ""
    if with_symbol:
        return f"{sign}Rp {digits}"
    return f"{sign}{digits}"


def format_percentage(value: float, decimals: int = 1) -> str:
    """`96.0` -> `96,0%` (comma decimal separator)."""
    return f"{value:.{decimals}f}".replace(".", ",") + "%"
