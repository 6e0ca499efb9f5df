from sdcat.infrastructure.graph.di import GraphProvider

__all__ = ["GraphProvider"]
