"""Exception hierarchy for rule matching, resolution and fetching.

Callers can catch :class:`UriNormalizerError` to handle every failure of the
package, or one of the subclasses to react to a specific category: a URI no
rule knows about, a broken rule table, an unreachable authority, an
unexpected HTTP status, a wrong content type, an unparseable body, or RDF
data that says nothing about the requested entity.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "UriNormalizerError",
    "ConfigurationError",
    "MalformedRule",
    "NoRuleMatch",
    "TransportFailure",
    "NonRetryableStatus",
    "ContentTypeMismatch",
    "NoMatchingSubject",
    "MetadataParseError",
]


class UriNormalizerError(RuntimeError):
    """Base exception for every normalization, resolution or fetch failure."""


class ConfigurationError(UriNormalizerError):
    """Raised when rules, retry settings or the rule table file are invalid."""


class MalformedRule(ConfigurationError):
    """Raised when a rule pattern or its replacement templates cannot be used."""


class NoRuleMatch(UriNormalizerError):
    """Raised when no rule of the table applies to a URI."""

    def __init__(self, uri: str) -> None:
        super().__init__(f"{uri} doesn't match any rule")
        self.uri = uri


class TransportFailure(UriNormalizerError):
    """Raised when sending a request kept failing until the retry budget ran out."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Failed to fetch data from {url} with message {message}")
        self.url = url
        self.transport_message = message


class NonRetryableStatus(UriNormalizerError):
    """Raised for a fatal HTTP status or a transient one once retries are exhausted."""

    def __init__(self, url: str, status_code: int, reason: Optional[str] = None) -> None:
        message = f"Failed to fetch data from {url} with status code {status_code}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ContentTypeMismatch(UriNormalizerError):
    """Raised when a successful response carries an unexpected content type."""

    def __init__(self, url: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Failed to fetch data from {url}: expected content-type {expected} "
            f"but got {actual or 'none'}"
        )
        self.url = url
        self.expected = expected
        self.actual = actual


class NoMatchingSubject(UriNormalizerError):
    """Raised when fetched RDF data holds no statements about the requested URI."""

    def __init__(self, uri: str, url: str) -> None:
        super().__init__(
            f"RDF data fetched for {uri} resolved to {url} don't contain matching subject"
        )
        self.uri = uri
        self.url = url


class MetadataParseError(UriNormalizerError):
    """Raised when a fetched body cannot be parsed as RDF in the expected format."""

    def __init__(self, uri: str, url: str, message: str) -> None:
        super().__init__(
            f"RDF data fetched for {uri} resolved to {url} can't be parsed: {message}"
        )
        self.uri = uri
        self.url = url
