"""Validation and N-Triples encoding of self-description claims.

Every term of every claim is checked against the lexical grammar of its RDF
term kind before anything is sent to the graph store, so a batch is either
accepted as a whole or rejected as a whole.
"""

import logging
import re
from collections.abc import Iterable

from rdflib import Graph, Literal, URIRef
from rdflib.namespace import XSD
from rdflib.term import Node

from sdcat.domain.graph.model.value import SdClaim
from sdcat.domain.shared.error import InvalidClaimError

logger = logging.getLogger(__name__)

DEFAULT_HAS_URI_PREDICATE = "http://w3id.org/gaia-x/participant#hasURI"

# N-Triples IRIREF, restricted to absolute IRIs (a scheme is mandatory).
_IRI_RE = re.compile(r"^<([A-Za-z][A-Za-z0-9+.\-]*:[^\x00-\x20<>\"{}|^`\\]*)>$")
_BLANK_NODE_RE = re.compile(r"^_:\S*$")
_LITERAL_RE = re.compile(
    r'^"((?:[^"\\\n\r]|\\[tbnrf"\'\\]|\\u[0-9A-Fa-f]{4}|\\U[0-9A-Fa-f]{8})*)"'
    r"(?:\^\^(<[^>]*>)|@([A-Za-z]+(?:-[A-Za-z0-9]+)*))?$"
)
_ESCAPE_RE = re.compile(r"\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)")
_ESCAPES = {"t": "\t", "b": "\b", "n": "\n", "r": "\r", "f": "\f", '"': '"', "'": "'", "\\": "\\"}


def _unescape(value: str) -> str:
    def repl(match: re.Match[str]) -> str:
        token = match.group(1)
        if token[0] in "uU":
            return chr(int(token[1:], 16))
        return _ESCAPES[token]

    return _ESCAPE_RE.sub(repl, value)


def _fail(position: str, claim: SdClaim, reason: str) -> InvalidClaimError:
    return InvalidClaimError(f"{position.capitalize()} in triple {claim} {reason}", position)


def _parse_iri(term: str, position: str, claim: SdClaim) -> URIRef:
    match = _IRI_RE.match(term)
    if match is None:
        raise _fail(position, claim, f"is not a valid absolute IRI: {term!r}")
    return URIRef(match.group(1))


def _parse_object(term: str, claim: SdClaim) -> Node:
    if term.startswith("<"):
        return _parse_iri(term, "object", claim)
    if _BLANK_NODE_RE.match(term):
        raise _fail("object", claim, f"must not be a blank node: {term!r}")
    if not term.startswith('"'):
        raise _fail("object", claim, f"is neither an IRI nor a literal: {term!r}")

    match = _LITERAL_RE.match(term)
    if match is None:
        raise _fail("object", claim, f"is not a well-formed literal: {term!r}")
    lexical, datatype, lang = match.groups()
    value = _unescape(lexical)
    if lang:
        return Literal(value, lang=lang)
    if datatype is None:
        return Literal(value)

    datatype_iri = _parse_iri(datatype, "object", claim)
    literal = Literal(value, datatype=datatype_iri, normalize=False)
    if literal.ill_typed:
        raise _fail(
            "object",
            claim,
            f"has a value {value!r} that is not valid for datatype <{datatype_iri}>",
        )
    return literal


def parse_claim(claim: SdClaim) -> tuple[URIRef, URIRef, Node]:
    """Validate one claim and return its rdflib terms.

    Raises:
        InvalidClaimError: naming the failing position.
    """
    subject = _parse_iri(claim.subject.strip(), "subject", claim)
    predicate = _parse_iri(claim.predicate.strip(), "predicate", claim)
    obj = _parse_object(claim.object.strip(), claim)
    return subject, predicate, obj


def normalize_subject(subject_id: str) -> str:
    """Accept a subject id with or without its N-Triples angle brackets."""
    subject_id = subject_id.strip()
    if subject_id.startswith("<") and subject_id.endswith(">"):
        return subject_id[1:-1]
    return subject_id


def validate_claims(claims: Iterable[SdClaim]) -> list[tuple[URIRef, URIRef, Node]]:
    return [parse_claim(c) for c in claims]


class ClaimCodec:
    """Turns claims for one credential subject into an N-Triples import payload.

    Only triples whose subject is exactly ``<subject_id>`` are kept. A
    ``<subject_id> <hasURI> "subject_id"`` triple is always appended so the
    mimicked subject graph carries a literal self-reference.
    """

    def __init__(self, has_uri_predicate: str = DEFAULT_HAS_URI_PREDICATE) -> None:
        self.has_uri_predicate = URIRef(has_uri_predicate)

    def to_graph(self, claims: Iterable[SdClaim], subject_id: str) -> Graph:
        triples = validate_claims(claims)
        subject_id = normalize_subject(subject_id)
        subject = URIRef(subject_id)

        graph = Graph()
        skipped = 0
        for s, p, o in triples:
            if s == subject:
                graph.add((s, p, o))
            else:
                skipped += 1
        graph.add((subject, self.has_uri_predicate, Literal(subject_id, datatype=XSD.string)))

        if skipped:
            logger.debug("Skipped %d claims not about subject %s", skipped, subject_id)
        return graph

    def encode(self, claims: Iterable[SdClaim], subject_id: str) -> str:
        return self.to_graph(claims, subject_id).serialize(format="nt")
