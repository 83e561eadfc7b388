"""
Unit tests — Normalizer facade: caching, cache aliasing and bulk normalization.
"""

import pandas as pd
import pytest
from rdflib import Graph, Literal, URIRef

from urinorm.cache import ResultCache, open_cache
from urinorm.errors import ConfigurationError, NonRetryableStatus, NoRuleMatch
from urinorm.normalizer import Normalizer
from tests.conftest import (
    AUTHORITY_RULES,
    GND_NT,
    GND_URI,
    GND_URL,
    NT,
    ok,
    stub_transport,
)

ID_PROP = "https://id/prop"


@pytest.fixture
def cache():
    return ResultCache()


class TestNormalize:
    """urinorm.normalizer.Normalizer.normalize — end-to-end examples and caching."""

    def test_geonames(self):
        """A GeoNames page URL normalizes to its canonical id."""
        normalizer = Normalizer(AUTHORITY_RULES)
        assert normalizer.normalize("http://aaa.geonames.org/276136/borj-ej-jaaiyat.html") == \
            "https://www.geonames.org/276136"

    def test_orcid(self):
        """ORCID ids come back hyphenated."""
        normalizer = Normalizer(AUTHORITY_RULES)
        assert normalizer.normalize("https://orcid.org/0000000252748278") == \
            "https://orcid.org/0000-0002-5274-8278"

    def test_no_match(self):
        """Unknown URIs raise unless require_match is False."""
        normalizer = Normalizer(AUTHORITY_RULES)
        with pytest.raises(NoRuleMatch):
            normalizer.normalize("https://sample.uri")
        assert normalizer.normalize("https://sample.uri", require_match=False) == "https://sample.uri"

    def test_cached_under_input_and_canonical(self, cache):
        """The result is stored under both the input and the canonical URI."""
        normalizer = Normalizer(AUTHORITY_RULES, cache=cache)
        normalizer.normalize("https://orcid.org/0000000252748278")
        assert cache.get("n:https://orcid.org/0000000252748278") == "https://orcid.org/0000-0002-5274-8278"
        assert cache.get("n:https://orcid.org/0000-0002-5274-8278") == "https://orcid.org/0000-0002-5274-8278"

    def test_unmatched_passthrough_not_cached(self, cache):
        """A pass-through result for an unknown URI is never cached."""
        normalizer = Normalizer(AUTHORITY_RULES, cache=cache)
        normalizer.normalize("https://sample.uri", require_match=False)
        assert cache.has("n:https://sample.uri") is False


class TestResolveAndFetchCaching:
    """A cached resolution never reaches the transport again."""

    def test_resolve_twice_one_request(self, cache):
        """A second resolve of the same URI is served from the cache."""
        transport = stub_transport(ok(200, NT))
        normalizer = Normalizer(AUTHORITY_RULES, transport=transport, cache=cache)
        first = normalizer.resolve(GND_URI)
        second = normalizer.resolve(GND_URI)
        assert transport.send.call_count == 1
        assert second is first
        assert first.final_url == GND_URL

    def test_fetch_twice_one_request(self, cache):
        """A second fetch of the same URI returns the cached resource."""
        transport = stub_transport(ok(200, NT, GND_NT))
        normalizer = Normalizer(AUTHORITY_RULES, transport=transport, cache=cache)
        first = normalizer.fetch(GND_URI)
        second = normalizer.fetch(GND_URI)
        assert transport.send.call_count == 1
        assert second is first

    def test_fetch_alias_by_canonical_and_final_url(self, cache):
        """A fetch is also cached under the canonical URI it resolved to."""
        transport = stub_transport(
            ok(301, None, location=GND_URI),
            ok(200, NT, GND_NT),
        )
        normalizer = Normalizer(AUTHORITY_RULES, transport=transport, cache=cache)
        first = normalizer.fetch("http://aaa.d-nb.info/gnd/4491366-7")
        assert normalizer.fetch(GND_URI) is first
        assert cache.has("f:" + GND_URI)
        assert transport.send.call_count == 2

    def test_resolve_from_durable_cache(self, tmp_path):
        """A new Normalizer on the same SQLite file needs no request."""
        path = tmp_path / "cache.sqlite"
        first = Normalizer(AUTHORITY_RULES, transport=stub_transport(ok(200, NT)), cache=open_cache(path))
        resolved = first.resolve(GND_URI)

        transport = stub_transport()
        second = Normalizer(AUTHORITY_RULES, transport=transport, cache=open_cache(path))
        assert second.resolve(GND_URI) == resolved
        transport.send.assert_not_called()

    def test_without_cache_every_call_is_sent(self):
        """Without a cache every resolve reaches the transport."""
        transport = stub_transport(ok(200, NT), ok(200, NT))
        normalizer = Normalizer(AUTHORITY_RULES, transport=transport)
        normalizer.resolve(GND_URI)
        normalizer.resolve(GND_URI)
        assert transport.send.call_count == 2

    def test_failure_not_cached(self, cache):
        """A failed resolve is retried on the next call."""
        transport = stub_transport(ok(404), ok(404), ok(200, NT))
        normalizer = Normalizer(AUTHORITY_RULES, transport=transport, cache=cache)
        with pytest.raises(NonRetryableStatus):
            normalizer.resolve(GND_URI)
        assert normalizer.resolve(GND_URI).status_code == 200


class TestNormalizeMeta:
    """urinorm.normalizer.Normalizer.normalize_meta — in-place RDF resource update."""

    def test_resource(self):
        """Values of the default id property are replaced by canonical URIs."""
        graph = Graph()
        res = graph.resource(URIRef("https://example.org/res"))
        res.add(URIRef(ID_PROP), URIRef("http://aaa.geonames.org/276136/borj-ej-jaaiyat.html"))
        Normalizer(AUTHORITY_RULES, id_property=ID_PROP).normalize_meta(res)
        assert set(graph.objects(res.identifier, URIRef(ID_PROP))) == {
            URIRef("https://www.geonames.org/276136"),
        }

    def test_explicit_property_overrides_default(self):
        """An id_property argument wins over the configured one."""
        graph = Graph()
        res = graph.resource(URIRef("https://example.org/res"))
        res.add(URIRef("https://other/prop"), URIRef("https://orcid.org/0000000252748278"))
        Normalizer(AUTHORITY_RULES, id_property=ID_PROP).normalize_meta(res, "https://other/prop")
        assert graph.value(res.identifier, URIRef("https://other/prop")) == \
            URIRef("https://orcid.org/0000-0002-5274-8278")

    def test_property_required(self):
        """Without any id property a ConfigurationError is raised."""
        res = Graph().resource(URIRef("https://example.org/res"))
        with pytest.raises(ConfigurationError, match="Id property not defined"):
            Normalizer(AUTHORITY_RULES).normalize_meta(res)

    def test_partial_update_on_failure(self):
        """Values processed before a failing one stay normalized."""
        graph = Graph()
        res = graph.resource(URIRef("https://example.org/res"))
        prop = URIRef(ID_PROP)
        res.add(prop, URIRef("https://unknown.example/1"))
        res.add(prop, URIRef("https://orcid.org/0000000252748278"))
        with pytest.raises(NoRuleMatch):
            Normalizer(AUTHORITY_RULES).normalize_meta(res, ID_PROP)
        # orcid sorts before the unknown value, so it was already rewritten
        assert set(graph.objects(res.identifier, prop)) == {
            URIRef("https://orcid.org/0000-0002-5274-8278"),
            URIRef("https://unknown.example/1"),
        }

    def test_literal_values_untouched(self):
        """Literal values of the id property are skipped, not normalized or rejected."""
        graph = Graph()
        res = graph.resource(URIRef("https://example.org/res"))
        prop = URIRef(ID_PROP)
        res.add(prop, Literal("some label"))
        res.add(prop, Literal("https://orcid.org/0000000252748278"))
        res.add(prop, URIRef("https://orcid.org/0000000252748278"))
        Normalizer(AUTHORITY_RULES).normalize_meta(res, ID_PROP)
        assert set(graph.objects(res.identifier, prop)) == {
            Literal("some label"),
            Literal("https://orcid.org/0000000252748278"),
            URIRef("https://orcid.org/0000-0002-5274-8278"),
        }

    def test_lenient(self):
        """With require_match=False unknown values are kept as they are."""
        graph = Graph()
        res = graph.resource(URIRef("https://example.org/res"))
        res.add(URIRef(ID_PROP), URIRef("https://unknown.example/1"))
        Normalizer(AUTHORITY_RULES).normalize_meta(res, ID_PROP, require_match=False)
        assert graph.value(res.identifier, URIRef(ID_PROP)) == URIRef("https://unknown.example/1")


class TestNormalizeFrame:
    """urinorm.normalizer.Normalizer.normalize_frame — DataFrame column transform."""

    def test_returns_new_frame(self):
        """The column is normalized in a copy; nulls and the input frame are untouched."""
        frame = pd.DataFrame({
            "name": ["Borj", "Douglas", "Nobody"],
            "id": [
                "http://aaa.geonames.org/276136/borj-ej-jaaiyat.html",
                "https://www.wikidata.org/wiki/Q42",
                None,
            ],
        })
        result = Normalizer(AUTHORITY_RULES).normalize_frame(frame, "id")
        assert result["id"].tolist()[:2] == [
            "https://www.geonames.org/276136",
            "https://www.wikidata.org/entity/Q42",
        ]
        assert pd.isna(result["id"].iloc[2])
        assert frame["id"].iloc[0] == "http://aaa.geonames.org/276136/borj-ej-jaaiyat.html"

    def test_missing_column(self):
        """An unknown column raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            Normalizer(AUTHORITY_RULES).normalize_frame(pd.DataFrame({"a": []}), "id")


class TestReport:
    """urinorm.normalizer.Normalizer.report — run counters."""

    def test_counts_hits_misses_failures(self, cache):
        """report() summarizes lookups, hits, misses and failures."""
        normalizer = Normalizer(AUTHORITY_RULES, cache=cache)
        normalizer.normalize("https://orcid.org/0000000252748278")
        normalizer.normalize("https://orcid.org/0000000252748278")
        with pytest.raises(NoRuleMatch):
            normalizer.normalize("https://sample.uri")

        report = normalizer.report()
        assert report["lookups"] == 3
        assert report["cache_hits"] == 1
        assert report["cache_misses"] == 2
        assert report["failures"] == 1
        assert report["status"] == "completed"
        assert report["cache_hit_rate_pct"] == 33.33
        assert normalizer.metrics["status"] == "running"
