"""Custom Dishka scopes for the catalogue."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """Dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Application lifetime (engine, graph driver, blob store, coordinator)
    - UOW: One caller operation or one scheduled run
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
