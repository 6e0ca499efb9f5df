from abc import abstractmethod
from typing import Any, Protocol

from sdcat.domain.graph.model.value import QueryRequest, SdClaim
from sdcat.domain.shared.port import Port


class GraphStore(Port, Protocol):
    @abstractmethod
    async def add_claims(self, claims: list[SdClaim], subject_id: str) -> None:
        """Validate and import the claims about `subject_id`.

        Raises InvalidClaimError before anything is sent if any claim is malformed.
        """
        ...

    @abstractmethod
    async def delete_claims(self, subject_id: str) -> None:
        """Remove the subject node and every relationship attached to it."""
        ...

    @abstractmethod
    async def query_data(self, query: QueryRequest) -> list[dict[str, Any]]:
        """Run a read-only query and return projected rows."""
        ...
