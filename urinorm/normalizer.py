"""
urinorm.normalizer — Facade combining the rule table, the resolver and the result cache.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Union

import pandas as pd
from rdflib import URIRef
from rdflib.resource import Resource

from urinorm.cache import MISSING, ResultCache
from urinorm.errors import ConfigurationError, NoRuleMatch, UriNormalizerError
from urinorm.observability import finish_run, record, start_run
from urinorm.resolver import ResolvedRequest, Resolver
from urinorm.retry import RetryPolicy
from urinorm.rules import RuleLike, RuleSet
from urinorm.settings import MAX_REDIRECTS

logger = logging.getLogger(__name__)

NORMALIZE_PREFIX = "n:"
RESOLVE_PREFIX = "r:"
FETCH_PREFIX = "f:"


class Normalizer:
    """
    Normalizes, resolves and fetches identifier URIs.

    Every successful result is cached under the input URI and under the
    URIs it was found to be equivalent to (canonical form, post-redirect
    URL), so a later lookup by any of them is a cache hit.  Pass
    ``cache=None`` to disable caching.
    """

    def __init__(
        self,
        rules: Union[RuleSet, Iterable[RuleLike]],
        transport=None,
        cache: Optional[ResultCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
        parser=None,
        id_property: Optional[str] = None,
        max_redirects: int = MAX_REDIRECTS,
    ):
        self.rules = rules if isinstance(rules, RuleSet) else RuleSet(rules)
        self.resolver = Resolver(self.rules, transport, retry_policy, parser, max_redirects)
        self.cache = cache
        self.id_property = id_property
        self.metrics = start_run("normalizer")

    def _lookup(self, prefix: str, uri: str, compute: Callable[[], tuple]):
        """
        Cache-aware evaluation.  ``compute`` returns ``(value, aliases)``;
        ``aliases`` of None means the value must not be cached.
        """
        record(self.metrics, "lookups")
        key = prefix + uri
        if self.cache is not None:
            value = self.cache.get(key, MISSING)
            if value is not MISSING:
                record(self.metrics, "cache_hits")
                logger.debug("Cache hit for %s", key)
                return value
        record(self.metrics, "cache_misses")

        try:
            value, aliases = compute()
        except UriNormalizerError:
            record(self.metrics, "failures")
            raise

        if self.cache is not None and aliases is not None:
            keys = {prefix + alias for alias in (uri, *aliases) if alias}
            self.cache.set_many({k: value for k in keys})
        return value

    def _canonical_or_none(self, uri: str) -> Optional[str]:
        rule = self.rules.match(uri)
        return rule.canonical(uri) if rule is not None else None

    def normalize(self, uri: str, require_match: bool = True) -> str:
        """Return the canonical form of ``uri``.

        Raises :class:`NoRuleMatch` when no rule applies, unless
        ``require_match`` is False, in which case ``uri`` comes back unchanged.
        """
        def compute():
            canonical = self._canonical_or_none(uri)
            if canonical is None:
                if require_match:
                    raise NoRuleMatch(uri)
                return uri, None
            return canonical, (canonical,)

        return self._lookup(NORMALIZE_PREFIX, uri, compute)

    def resolve(self, uri: str) -> ResolvedRequest:
        """Resolve ``uri`` to the URL serving its metadata and validate the response."""
        def compute():
            resolved = self.resolver.resolve(uri)
            return resolved, (resolved.final_url, self._canonical_or_none(uri))

        return self._lookup(RESOLVE_PREFIX, uri, compute)

    def fetch(self, uri: str) -> Resource:
        """Fetch RDF metadata describing ``uri``."""
        def compute():
            resource, final_url = self.resolver.fetch_with_url(uri)
            return resource, (final_url, self._canonical_or_none(uri), str(resource.identifier))

        return self._lookup(FETCH_PREFIX, uri, compute)

    def normalize_meta(
        self,
        resource: Resource,
        id_property: Optional[str] = None,
        require_match: bool = True,
    ) -> None:
        """
        Normalize, in place, every resource value of ``id_property`` on an RDF
        resource.  Literal and blank node values are left alone.

        Values are processed in sorted order.  Not transactional: if one
        value fails, values processed before it stay normalized and the
        failing one is left untouched.
        """
        prop = id_property or self.id_property
        if not prop:
            raise ConfigurationError("Id property not defined")
        prop = URIRef(prop)
        graph = resource.graph
        subject = resource.identifier
        values = sorted(v for v in graph.objects(subject, prop) if isinstance(v, URIRef))
        for value in values:
            normalized = URIRef(self.normalize(str(value), require_match))
            if normalized != value:
                graph.remove((subject, prop, value))
                graph.add((subject, prop, normalized))

    def normalize_frame(
        self,
        frame: pd.DataFrame,
        column: str,
        require_match: bool = True,
    ) -> pd.DataFrame:
        """Return a copy of ``frame`` with identifiers in ``column`` normalized.  Nulls are kept."""
        if column not in frame.columns:
            raise ConfigurationError(f"Column {column!r} not found")
        result = frame.copy()
        result[column] = result[column].map(
            lambda v: v if pd.isna(v) else self.normalize(str(v), require_match)
        )
        return result

    def report(self) -> dict:
        """Finished snapshot of the run counters; counting continues afterwards."""
        return finish_run(self.metrics)
