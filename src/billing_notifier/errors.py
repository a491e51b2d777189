class BillingNotifierError(Exception):
    """
    base class for every failure the reporter surfaces to its caller.
    """


class ConfigError(BillingNotifierError):
    pass


class MetricsFetchError(BillingNotifierError):
    """
    raised when the metrics API call for a label fails. The label is
    either the aggregate label or a service name.
    """

    def __init__(self, label: "str", cause: "BaseException | None" = None) -> "None":
        self.label = label
        self.cause = cause
        message = f"failed to fetch estimated charges for {label}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class DeliveryFailed(BillingNotifierError):
    """
    raised when the webhook POST fails. status_code is None when no
    HTTP response was received at all.
    """

    def __init__(self, status_code: "int | None", reason: "str" = "") -> "None":
        self.status_code = status_code
        self.reason = reason
        if status_code is None:
            message = f"webhook delivery failed: {reason}"
        else:
            message = f"webhook returned HTTP {status_code}"
        super().__init__(message)
