from .host import TransducerHost

__all__ = ["TransducerHost"]
