from sdcat.domain.selfdescription.util.di.provider import SelfDescriptionProvider

__all__ = ["SelfDescriptionProvider"]
