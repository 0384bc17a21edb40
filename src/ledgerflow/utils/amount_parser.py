"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles the formats bank statements and users tend to produce:
    - "11800", "11800.00"
    - "₹11,800.00", "Rs. 11,800", "INR 11800"
    - "1,18,000.00" (Indian digit grouping)
    - "-500", "(500.00)" (negative in parentheses)
    - "500 DR" / "500 CR" suffixes (DR is negative)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    suffix = re.search(r"\s*\b(DR|CR)\.?$", amount_str, re.IGNORECASE)
    if suffix:
        if suffix.group(1).upper() == "DR":
            is_negative = not is_negative
        amount_str = amount_str[: suffix.start()]

    # Currency markers
    amount_str = re.sub(r"(?i)^(rs\.?|inr)\s*", "", amount_str.strip())
    amount_str = re.sub(r"(?i)^-\s*(rs\.?|inr)\s*", "-", amount_str)
    amount_str = re.sub(r"[$€£¥₹]", "", amount_str)

    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
