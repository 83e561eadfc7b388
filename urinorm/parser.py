"""
urinorm.parser — RDF parsing of fetched metadata and subject lookup (rdflib).
"""

import rdflib
from rdflib.resource import Resource

# rdflib plugin names for the media types authorities commonly serve
RDF_FORMATS = {
    "application/rdf+xml": "xml",
    "application/n-triples": "nt",
    "text/plain": "nt",
    "text/turtle": "turtle",
    "application/x-turtle": "turtle",
    "text/n3": "n3",
    "application/ld+json": "json-ld",
    "application/json": "json-ld",
    "application/n-quads": "nquads",
    "application/trig": "trig",
}


def rdf_format(content_type: str) -> str:
    """Map a media type to the rdflib parser name (unknown types pass through)."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    return RDF_FORMATS.get(media_type, media_type)


class RdfParser:
    """Default parser: builds an :class:`rdflib.Graph` from a response body."""

    def parse(self, body: bytes, content_type: str) -> rdflib.Graph:
        graph = rdflib.Graph()
        graph.parse(data=body, format=rdf_format(content_type))
        return graph

    def subject_has_statements(self, graph: rdflib.Graph, uri: str) -> bool:
        return next(graph.predicate_objects(rdflib.URIRef(uri)), None) is not None

    def resource(self, graph: rdflib.Graph, uri: str) -> Resource:
        return graph.resource(rdflib.URIRef(uri))
