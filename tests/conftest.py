"""
tests/conftest.py — Shared rule tables, RDF payloads and transport stubs for the test suite.
"""

from unittest.mock import MagicMock

import pytest

from urinorm.rules import RuleSet
from urinorm.transport import Err, HttpResponse, Ok

NT = "application/n-triples"
RDFS_LABEL = "http://www.w3.org/2000/01/rdf-schema#label"

AUTHORITY_RULES = [
    {"match": r"^https?://([^.]*[.])?geonames[.]org/([0-9]+)(/.*)?$",
     "replace": r"https://www.geonames.org/\2"},
    {"match": r"^https?://([^.]*[.])?gazetteer[.]dainst[.]org/([A-Za-z]+/)*([0-9]+)([^0-9].*)?$",
     "replace": r"https://gazetteer.dainst.org/place/\3"},
    {"match": r"^https?://([^.]*[.])?pleiades[.]stoa[.]org/places/([0-9]+)(/.*)?$",
     "replace": r"https://www.pleiades.stoa.org/places/\2"},
    {"match": r"^https?://([^.]*[.])?viaf[.]org/viaf/([0-9]+)(/.*)?$",
     "replace": r"https://viaf.org/viaf/\2"},
    {"match": r"^https?://([^.]*[.])?d-nb[.]info/gnd/([0-9]+-[0-9X]+)$",
     "replace": r"https://d-nb.info/gnd/\2",
     "resolve": r"https://d-nb.info/gnd/\2/about/lds.nt",
     "format": NT},
    {"match": r"^https?://([^.]*[.])?wikidata[.]org/([A-Za-z:]+/)*(Q[0-9]+)([^0-9].*)?$",
     "replace": r"https://www.wikidata.org/entity/\3"},
    {"match": r"^https?://([^.]*[.])?orcid[.]org/([0-9]{4})-?([0-9]{4})-?([0-9]{4})-?([0-9]{4})$",
     "replace": r"https://orcid.org/\2-\3-\4-\5",
     "resolve": r"https://orcid.org/\2-\3-\4-\5",
     "format": NT},
    {"match": r"^https?://([^.]*[.])?n2t[.]net/ark:/99152/(p0[a-z0-9]+)$",
     "replace": r"https://n2t.net/ark:/99152/\2"},
    {"match": r"^https?://([^.]*[.])?chronontology[.]dainst[.]org/period/([A-Za-z0-9]+)$",
     "replace": r"https://chronontology.dainst.org/period/\2"},
]

GND_URI = "https://d-nb.info/gnd/4491366-7"
GND_URL = "https://d-nb.info/gnd/4491366-7/about/lds.nt"

GND_NT = f'<{GND_URI}> <{RDFS_LABEL}> "Wien" .\n'.encode("utf-8")
OTHER_NT = f'<https://example.org/other> <{RDFS_LABEL}> "Other" .\n'.encode("utf-8")


def http_response(status_code: int = 200, content_type: str = NT, body: bytes = b"",
                  location: str = None) -> HttpResponse:
    """Build an ``HttpResponse`` with optional Content-Type and Location headers."""
    headers = {}
    if content_type:
        headers["Content-Type"] = content_type
    if location:
        headers["Location"] = location
    return HttpResponse(status_code=status_code, headers=headers, body=body)


def ok(status_code: int = 200, content_type: str = NT, body: bytes = b"", location: str = None) -> Ok:
    return Ok(http_response(status_code, content_type, body, location))


def err(message: str = "Connection refused") -> Err:
    return Err(message)


def stub_transport(*outcomes):
    """A ``MagicMock`` transport whose ``send`` returns ``outcomes`` in order."""
    transport = MagicMock()
    transport.send.side_effect = list(outcomes)
    return transport


def sent(transport) -> list[tuple[str, str]]:
    """``(method, url)`` of every request the stub transport received."""
    return [(c.args[0].method, c.args[0].url) for c in transport.send.call_args_list]


@pytest.fixture
def rules():
    return RuleSet(AUTHORITY_RULES)
