"""
urinorm — Identifier URI normalization and authority metadata resolution.

Re-exports every public symbol so that callers can use
``from urinorm import Normalizer, RetryPolicy, open_cache``.
"""

from urinorm.settings import (
    REQUEST_TIMEOUT,
    CACHE_TTL,
    MAX_REDIRECTS,
    SUCCESS_STATUS_CODES,
    TRANSIENT_STATUS_CODES,
    configure_logging,
)

from urinorm.errors import (
    UriNormalizerError,
    ConfigurationError,
    MalformedRule,
    NoRuleMatch,
    TransportFailure,
    NonRetryableStatus,
    ContentTypeMismatch,
    NoMatchingSubject,
    MetadataParseError,
)

from urinorm.rules import NormalizationRule, RuleSet, load_rules

from urinorm.retry import (
    SCALE_CONSTANT,
    SCALE_MULTIPLICATIVE,
    SCALE_POWER,
    RetryPolicy,
)

from urinorm.transport import (
    HttpRequest,
    HttpResponse,
    Ok,
    Err,
    RequestsTransport,
)

from urinorm.parser import RdfParser

from urinorm.cache import (
    MemoryBackend,
    SqliteBackend,
    ResultCache,
    open_cache,
)

from urinorm.resolver import ResolvedRequest, Resolver

from urinorm.normalizer import Normalizer
