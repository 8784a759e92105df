"""meshwardrive - local sample store for mesh wardriving sessions."""

__version__ = "0.3.0"
