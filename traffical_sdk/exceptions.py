"""
Exception types for the Traffical SDK

Every error raised by this package derives from TrafficalError, so callers
can catch one type at the integration boundary. Each error carries a short
string code (see ErrorCodes) which the CLI prints and tests assert on.

Note that parameter resolution never raises for a missing or stale bundle:
those cases fall back to the caller's defaults. Exceptions are reserved for
configuration files, credentials and explicit network operations.
"""

from typing import Optional


class ErrorCodes:
    """String constants attached to every TrafficalError"""

    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_PARSE = "CONFIG_PARSE"
    CONFIG_VALIDATION = "CONFIG_VALIDATION"
    CONFIG_EXISTS = "CONFIG_EXISTS"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    BUNDLE_HTTP = "BUNDLE_HTTP"
    BUNDLE_INVALID = "BUNDLE_INVALID"
    EVENT_DELIVERY = "EVENT_DELIVERY"
    MANAGEMENT_HTTP = "MANAGEMENT_HTTP"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    DOCS_INCONSISTENT = "DOCS_INCONSISTENT"
    CLIENT_NOT_INITIALIZED = "CLIENT_NOT_INITIALIZED"


class TrafficalError(Exception):
    """
    Base exception for the SDK and CLI

    Instead of generic ValueError/RuntimeError, callers can catch this one
    type and branch on `code` when they need to.
    """

    def __init__(self, code: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ConfigFileError(TrafficalError):
    """Local config.yaml is missing, unparsable or fails validation"""


class CredentialsError(TrafficalError):
    """No API key or management key could be found"""


class BundleFetchError(TrafficalError):
    """The configuration bundle could not be fetched or was malformed"""


class EventDeliveryError(TrafficalError):
    """A batch of decision/track events was rejected by the platform"""


class ManagementApiError(TrafficalError):
    """A CLI call against the management API failed"""


class DocumentationError(TrafficalError):
    """A skill document failed the consistency checks"""

    def __init__(self, problems, message: Optional[str] = None):
        self.problems = list(problems)
        super().__init__(
            ErrorCodes.DOCS_INCONSISTENT,
            message or f"{len(self.problems)} documentation problem(s): {self.problems}",
        )
