"""Token amount normalization.

CRITICAL: On-chain amounts are uint256 values. They are carried and stored as
plain decimal-integer strings and never pass through float. Scientific-notation
strings ("1.2345e+23"), produced upstream by naive number-to-string
conversion, are re-rendered as plain integers via Decimal.
"""

from decimal import Decimal, InvalidOperation, localcontext

from tradesync.exceptions import InvalidAmountError
from tradesync.logging import get_logger

logger = get_logger(__name__)

AMOUNT_FIELDS = (
    "sell_amount",
    "buy_amount",
    "executed_sell_amount",
    "executed_buy_amount",
    "executed_sell_amount_before_fees",
)

# uint256 max has 78 digits; leave headroom for exponent expansion
_PRECISION = 100


def sanitize_amount(value: str | int | Decimal | None) -> str | None:
    """Render an amount as a plain base-10 integer string.

    Accepts ints, Decimals and numeric strings (including scientific
    notation). Fractional parts are truncated toward zero, matching the
    integer semantics of token base units. None passes through.

    Raises InvalidAmountError for floats, booleans and unparsable input.
    """
    if value is None:
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(
            f"Refusing to convert {type(value).__name__} amount {value!r}; "
            "amounts must arrive as int, Decimal or string"
        )
    if isinstance(value, int):
        return str(value)

    text = str(value).strip()
    # str.isdigit also accepts superscripts and non-Latin digits
    if text.isascii() and text.isdigit():
        return text

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise InvalidAmountError(f"Unparsable amount {value!r}") from None
        if not number.is_finite():
            raise InvalidAmountError(f"Non-finite amount {value!r}")
        rendered = str(int(number))

    if "e" in text.lower():
        logger.warning(
            "scientific_notation_amount_sanitized",
            original=text,
            sanitized=rendered,
        )
    return rendered
