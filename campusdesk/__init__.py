"""Campus support desk: ticket lifecycle and audit trail analysis."""

__version__ = "0.1.0"
