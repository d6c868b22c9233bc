"""Error kinds raised while turning a finished request into text."""


class AskCatError(Exception):
    """Base class; the message is what the user sees after ``Error: ``."""


class ParseError(AskCatError):
    """Exit 0, but the body is not the provider's JSON shape."""

    def __init__(self, reason: str = ""):
        super().__init__("Failed to parse response")
        self.reason = reason


class ApiError(AskCatError):
    """Non-zero exit, or a provider-reported error object."""


class CancelledNoop(AskCatError):
    """The process died from SIGKILL/SIGTERM; silent when the coordinator killed it."""
