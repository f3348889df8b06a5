"""Errors raised by services that call third-party APIs."""


class UpstreamServiceError(Exception):
    """A third-party dependency timed out or returned an error.

    Mapped to a 503 by the application. Callers never retry.
    """

    def __init__(self, service: str, message: str):
        self.service = service
        self.message = message
        super().__init__(f"{service}: {message}")
