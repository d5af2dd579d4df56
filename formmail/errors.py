# formmail/errors.py


class ValidationError(Exception):
    """A submission is missing one or more required fields (client error)."""

    public_message = "Missing required fields"

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"{self.public_message}: {', '.join(self.missing)}")


class TransportError(Exception):
    """The mail transport could not deliver the notification."""


class DeliveryRejected(TransportError):
    """The transport answered but refused the message (API error, SMTP rejection)."""

    def __init__(self, detail: str, status: int | None = None):
        self.detail = detail
        self.status = status
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{prefix}{detail}")
