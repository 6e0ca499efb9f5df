"""Read-only guard for caller-supplied Cypher statements."""

import re

from sdcat.domain.shared.error import QueryRejectedError

# String literals, comments and quoted identifiers never carry clauses.
_NOISE_RE = re.compile(
    r"""
      '(?:[^'\\]|\\.)*'
    | "(?:[^"\\]|\\.)*"
    | `[^`]*`
    | //[^\n]*
    | /\*.*?\*/
    """,
    re.VERBOSE | re.DOTALL,
)

# A clause keyword only counts when it is not a property, label or map key.
_CLAUSE_RE = re.compile(
    r"(?<![\w.:$])(CREATE|MERGE|DELETE|DETACH|SET|REMOVE|DROP|FOREACH|LOAD\s+CSV)(?!\w|\s*:)",
    re.IGNORECASE,
)

_PROCEDURE_RE = re.compile(
    r"(?<![\w.])CALL\s+("
    r"apoc\.(?:create|merge|refactor|periodic|do|cypher\.(?:runWrite|doIt)|nodes\.delete"
    r"|atomic|trigger|schema\.assert|custom|uuid|ttl|lock|export|import|systemdb)"
    r"|n10s\.(?:rdf\.(?:import|delete)|onto\.import|skos\.import|mapping\.(?:add|drop)"
    r"|nsprefixes\.(?:add|remove)|graphconfig\.(?:init|set|drop)|validation\.shacl\.import)"
    r"|db\.(?:create|drop|index\.fulltext\.(?:create|drop))"
    r"|gds\.graph\.drop"
    r"|dbms\."
    r")",
    re.IGNORECASE,
)


def strip_noise(statement: str) -> str:
    return _NOISE_RE.sub(" ", statement)


def ensure_read_only(statement: str) -> None:
    """Raise QueryRejectedError when `statement` could modify the graph.

    The check is lexical. The graph store additionally runs queries in a
    read transaction so anything that slips past is refused by the server.
    """
    scanned = strip_noise(statement)

    clause = _CLAUSE_RE.search(scanned)
    if clause is not None:
        keyword = " ".join(clause.group(1).upper().split())
        raise QueryRejectedError(f"Query contains a write clause: {keyword}")

    procedure = _PROCEDURE_RE.search(scanned)
    if procedure is not None:
        raise QueryRejectedError(f"Query calls a mutating procedure: {procedure.group(1)}")
