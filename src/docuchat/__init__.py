"""DocuChat: document-grounded chat over per-conversation uploads."""

__version__ = "0.1.0"
