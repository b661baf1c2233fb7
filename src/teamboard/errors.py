class TeamboardError(Exception):
    pass


class ConfigError(TeamboardError):
    """
    raised when required configuration (the admin API key)
    is missing or malformed.
    """


class UsageApiError(TeamboardError):
    """
    base class for failures of a single usage report request.
    These are absorbed per day by the range fetcher.
    """


class TransportError(UsageApiError):
    pass


class ApiError(UsageApiError):
    def __init__(self, status_code: "int", body: "str") -> "None":
        super().__init__(f"API {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class DecodeError(UsageApiError):
    pass
