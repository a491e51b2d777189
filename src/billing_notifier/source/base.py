from typing import Protocol

from billing_notifier.models import TimeWindow


class BillingSource(Protocol):
    """
    BillingSource stands as the common protocol for anything that can
    report estimated charges for a time window.

    With service_name unset the account-wide amount is returned,
    otherwise the amount for that single service.
    """

    async def fetch_estimated_charges(
        self,
        window: "TimeWindow",
        service_name: "str | None" = None,
    ) -> "float": ...
