from decimal import ROUND_HALF_UP, Decimal

from billing_notifier.models import BillingRecord, ChatField, ChatMessage

PRETEXT = "今月のAWSの利用費は…"
FALLBACK_TEMPLATE = "今月のAWSの利用費は、{total} {suffix}です。"
COLOR = "good"

_CENTS = Decimal("0.01")


def format_amount(amount: "float", rate: "float") -> "str":
    """
    converts a raw amount by rate and rounds to two decimals, ties away
    from zero. Both numbers go through their shortest repr so binary
    float noise does not decide a tie.
    """
    converted = Decimal(repr(amount)) * Decimal(repr(rate))
    rounded = converted.quantize(_CENTS, rounding=ROUND_HALF_UP)
    # a credit too small to show must not render as -0.00
    if rounded == 0:
        rounded = abs(rounded)
    return str(rounded)


def format_record(
    record: "BillingRecord",
    channel: "str",
    rate: "float",
    suffix: "str",
) -> "ChatMessage":
    fields = tuple(
        ChatField(
            title=label,
            value=f"{format_amount(amount, rate)} {suffix}",
        )
        for label, amount in record.items()
    )
    total = format_amount(record.total, rate)
    return ChatMessage(
        channel=channel,
        fallback=FALLBACK_TEMPLATE.format(total=total, suffix=suffix),
        pretext=PRETEXT,
        color=COLOR,
        fields=fields,
    )
