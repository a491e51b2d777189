from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

# label under which the account-wide amount is recorded
TOTAL_LABEL = "Total"


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """
    TimeWindow is the inclusive range of one reported calendar day,
    from 00:00:00 to 23:59:59 in the reporting time zone.
    """

    start: "datetime"
    end: "datetime"


class BillingRecord:
    """
    BillingRecord maps a label (the total or a service name) to the
    raw amount reported by the metrics API, before conversion.

    Iteration follows insertion order, so the total comes first and
    services follow in the order they were fetched.
    """

    def __init__(self) -> "None":
        self._amounts: "dict[str, float]" = {}

    def add(self, label: "str", amount: "float") -> "None":
        if label in self._amounts:
            raise ValueError(f"label {label!r} already recorded")
        self._amounts[label] = amount

    @property
    def total(self) -> "float":
        return self._amounts.get(TOTAL_LABEL, 0.0)

    def items(self) -> "list[tuple[str, float]]":
        return list(self._amounts.items())

    def __getitem__(self, label: "str") -> "float":
        return self._amounts[label]

    def __contains__(self, label: "object") -> "bool":
        return label in self._amounts

    def __iter__(self) -> "Iterator[str]":
        return iter(self._amounts)

    def __len__(self) -> "int":
        return len(self._amounts)


@dataclass(frozen=True, slots=True)
class ChatField:
    title: "str"
    value: "str"
    short: "bool" = True


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """
    ChatMessage is a single Slack attachment message. The fallback
    text carries the total for clients that cannot render fields.
    """

    channel: "str"
    fallback: "str"
    pretext: "str"
    color: "str"
    fields: "tuple[ChatField, ...]" = field(default_factory=tuple)

    def to_payload(self) -> "dict[str, Any]":
        return {
            "channel": self.channel,
            "attachments": [
                {
                    "fallback": self.fallback,
                    "pretext": self.pretext,
                    "color": self.color,
                    "fields": [
                        {"title": f.title, "value": f.value, "short": f.short}
                        for f in self.fields
                    ],
                }
            ],
        }


@dataclass(frozen=True, slots=True)
class ReportResult:
    window: "TimeWindow"
    record: "BillingRecord"
    message: "ChatMessage"
    # None when the message was not posted (dry run)
    status_code: "int | None"
