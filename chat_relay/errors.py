"""Errors raised while relaying a prompt, each mapped to an HTTP status."""


class RelayError(Exception):
    """Base class for failures that terminate a relay request."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(RelayError):
    """The caller sent something the relay cannot accept."""

    status_code = 400


class MethodNotAllowedError(ClientInputError):
    status_code = 405


class ConfigurationError(RelayError, RuntimeError):
    """Server-side configuration is missing or unusable."""


class UpstreamTransportError(RelayError):
    """The upstream endpoint could not be reached or read."""


class UpstreamTimeoutError(UpstreamTransportError):
    status_code = 504


class UpstreamProtocolError(RelayError):
    """The upstream answered, but not with a usable completion."""


class RequestCancelledError(UpstreamTransportError):
    """The caller disconnected before the upstream answered."""

    status_code = 499
