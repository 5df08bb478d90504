"""JSON-RPC 2.0 message types, parameter parsing, method collections, subscription handles and resource limiting."""

__version__ = "0.1.0"