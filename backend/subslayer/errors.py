"""Exceptions raised for whole-file failures.

Row-level problems never raise; they only drop or zero the affected row.
"""


class SubSlayerError(Exception):
    """Base exception for the package."""

    code = "ERROR"


class StatementParseError(SubSlayerError):
    """The file could not be read as a statement at all."""

    code = "PARSE_FAILURE"


class UnsupportedFormatError(SubSlayerError):
    """The file type is not CSV or PDF."""

    code = "UNSUPPORTED_FORMAT"


class NoTransactionsFoundError(SubSlayerError):
    """The file was read but no row matched any extraction rule."""

    code = "NO_VALID_TRANSACTIONS"


class TooManyFilesError(SubSlayerError):
    """More files were submitted in one batch than allowed."""

    code = "TOO_MANY_FILES"


class EmptyFileError(SubSlayerError):
    """The upload had no content."""

    code = "EMPTY_FILE"
