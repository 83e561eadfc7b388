"""
urinorm.resolver — Turn an identifier URI into a validated metadata request or RDF resource.

One resolution is a loop of exchanges.  An exchange sends the request,
follows redirects and, for HEAD requests, falls back to GET when the
authority refuses HEAD.  The retry policy decides after each exchange
whether to run another one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from urinorm.errors import (
    ContentTypeMismatch,
    MetadataParseError,
    NoMatchingSubject,
    NonRetryableStatus,
    NoRuleMatch,
    UriNormalizerError,
)
from urinorm.parser import RdfParser
from urinorm.retry import RetryPolicy
from urinorm.rules import NormalizationRule, RuleSet
from urinorm.settings import MAX_REDIRECTS
from urinorm.transport import Err, HttpRequest, HttpResponse, RequestsTransport, SendResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRequest:
    """A request that succeeded: where it ended up and how it got there."""

    uri: str
    final_url: str
    method: str
    status_code: int
    content_type: str


@dataclass(frozen=True)
class Exchange:
    outcome: SendResult
    url: str
    method: str


class Resolver:
    def __init__(
        self,
        rules: RuleSet,
        transport=None,
        retry_policy: Optional[RetryPolicy] = None,
        parser=None,
        max_redirects: int = MAX_REDIRECTS,
    ):
        self.rules = rules
        self.transport = transport or RequestsTransport()
        self.retry_policy = retry_policy or RetryPolicy()
        self.parser = parser or RdfParser()
        self.max_redirects = max_redirects

    def _match(self, uri: str) -> tuple[NormalizationRule, str]:
        found = self.rules.match_resolvable(uri)
        if found is None:
            raise NoRuleMatch(uri)
        return found

    def _send(self, method: str, url: str, rule: NormalizationRule) -> SendResult:
        headers = {"Accept": rule.format} if rule.format else {}
        return self.transport.send(HttpRequest(method, url, headers))

    def _exchange(self, method: str, url: str, rule: NormalizationRule) -> Exchange:
        """Send once, following redirects; HEAD falls back to GET at the same URL."""
        redirects = 0
        while True:
            outcome = self._send(method, url, rule)
            if method == "HEAD" and rule.head_fallback and (
                isinstance(outcome, Err) or outcome.response.status_code >= 400
            ):
                logger.info("HEAD %s refused, retrying as GET", url)
                method = "GET"
                outcome = self._send(method, url, rule)

            if isinstance(outcome, Err):
                return Exchange(outcome, url, method)

            response = outcome.response
            if 300 <= response.status_code < 400 and response.location:
                redirects += 1
                if redirects > self.max_redirects:
                    raise NonRetryableStatus(
                        url, response.status_code, f"more than {self.max_redirects} redirects"
                    )
                target = urljoin(url, response.location)
                logger.debug("Redirect %s %s -> %s", response.status_code, url, target)
                url = target
                continue

            return Exchange(outcome, url, method)

    def execute(self, method: str, url: str, rule: NormalizationRule) -> tuple[HttpResponse, str, str]:
        """
        Run exchanges until the retry policy reports success or raises.
        Returns the response, the final URL and the method actually used.
        """
        attempt = 0
        while True:
            exchange = self._exchange(method, url, rule)
            # a HEAD downgrade sticks for the remaining attempts
            method = exchange.method
            attempt += 1
            if not self.retry_policy.should_retry(exchange.outcome, attempt, exchange.url):
                break

        response = exchange.outcome.response
        content_type = response.content_type
        if content_type.lower() != rule.format.lower():
            logger.warning("Unexpected content-type %r from %s", content_type, exchange.url)
            raise ContentTypeMismatch(exchange.url, rule.format, content_type)
        return response, exchange.url, method

    def resolve(self, uri: str) -> ResolvedRequest:
        """Check that ``uri`` resolves to metadata in the expected format."""
        rule, url = self._match(uri)
        response, final_url, method = self.execute("HEAD", url, rule)
        return ResolvedRequest(
            uri=uri,
            final_url=final_url,
            method=method,
            status_code=response.status_code,
            content_type=response.content_type,
        )

    def fetch_with_url(self, uri: str):
        """Like :meth:`fetch`, also returning the post-redirect URL."""
        rule, url = self._match(uri)
        response, final_url, _ = self.execute("GET", url, rule)
        try:
            graph = self.parser.parse(response.body, rule.format)
        except UriNormalizerError:
            raise
        except Exception as e:  # rdflib parsers raise their own, unrelated exception types
            logger.warning("Unparseable %s body from %s: %s", rule.format, final_url, e)
            raise MetadataParseError(uri, final_url, str(e)) from e

        subject = uri
        if not self.parser.subject_has_statements(graph, subject):
            alternative = (rule.canonical(final_url) or final_url) if rule.alt_subject else None
            if alternative is None or not self.parser.subject_has_statements(graph, alternative):
                raise NoMatchingSubject(uri, final_url)
            logger.debug("No statements about %s, using %s", uri, alternative)
            subject = alternative
        return self.parser.resource(graph, subject), final_url

    def fetch(self, uri: str):
        """Fetch and parse RDF metadata about ``uri``."""
        return self.fetch_with_url(uri)[0]
