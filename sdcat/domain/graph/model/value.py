from typing import Any

from pydantic import Field

from sdcat.domain.shared.model.value import ValueObject


class SdClaim(ValueObject):
    """One RDF triple in lexical N-Triples form, e.g. ``<http://ex.org/a>``."""

    subject: str
    predicate: str
    object: str

    def __str__(self) -> str:
        return f"{self.subject} {self.predicate} {self.object}"


class QueryRequest(ValueObject):
    """A read-only Cypher statement plus its named parameters."""

    statement: str
    parameters: dict[str, Any] = Field(default_factory=dict)
