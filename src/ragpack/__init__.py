"""ragpack - retrieval-augmented generation served over MCP."""

__version__ = "0.1.0"
