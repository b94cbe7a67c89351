"""Error taxonomy for crawling and downloading."""


class OdGetError(Exception):
    """Base class for all od-get errors."""


class MalformedListing(OdGetError):
    """The listing page has no usable `Index of` heading."""


class EncodingError(OdGetError):
    """The page body is not valid UTF-8 text after entity decoding."""


class FetchError(OdGetError):
    """A transport-level failure (connection, timeout, non-2xx status)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FilesystemError(OdGetError):
    """Writing a downloaded file or the state store failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(OdGetError):
    """Invalid combination of options."""
