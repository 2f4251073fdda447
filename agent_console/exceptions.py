"""Exception hierarchy for the agent console."""


class AgentServiceError(Exception):
    """Base exception for failed calls to the agent backend."""


class TransportError(AgentServiceError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, status_text: str):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"{status_code} {status_text}".strip())


class MalformedResponseError(AgentServiceError):
    """The response body is not JSON or does not have the expected shape."""


class BackendUnavailableError(AgentServiceError):
    """The backend could not be reached (connection refused, timeout)."""


class OrchestrationInvariantError(RuntimeError):
    """The auto cycle ended up with other than exactly one armed timer."""
