class ProviderError(Exception):
    """Base for failures talking to an external time/calendar service."""


class ProviderUnreachableError(ProviderError):
    """Every attempt failed without a usable response."""

    def __init__(self, url: str, attempts: int, last_error: BaseException = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{url} unreachable after {attempts} attempt(s): {last_error}")


class InvalidResponseError(ProviderError):
    """The service answered, but not with the data we expected."""


class RamadanNotFoundError(Exception):
    def __init__(self, gregorian_year: int):
        self.gregorian_year = gregorian_year
        super().__init__(f"No Ramadan days found for year {gregorian_year}")
