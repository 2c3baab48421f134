"""codedrop — ephemeral, code-addressable text and file drop."""

__version__ = "1.0.0"
