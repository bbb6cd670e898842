"""Exception types raised by the parley-server core."""


class ParleyError(Exception):
    """Base class for all parley-server errors."""


class ProviderError(ParleyError):
    """The model endpoint failed while serving a request.

    Aborts the current exchange; nothing is committed to history.
    """


class ToolSourceError(ParleyError):
    """A tool source could not be reached, configured or used.

    Attributes:
        source_id: Id of the tool source involved, if known
    """

    def __init__(self, message: str, source_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id
