"""toolsmith: author, publish and run AI-backed multi-step form tools."""

__version__ = "1.0.0"
