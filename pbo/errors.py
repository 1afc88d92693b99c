class PboError(Exception):
    """Base class for PBO-specific errors."""


# Stream format
class PboFormatError(PboError):
    pass


class TruncatedArchiveError(PboFormatError):
    pass


class StringEncodingError(PboFormatError):
    pass


class UnknownPackingMethodError(PboFormatError):
    pass


# Content handling
class UnsupportedPackingError(PboError):
    pass


class DataSizeMismatchError(PboError):
    pass
