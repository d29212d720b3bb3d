"""Pet adoption API: adoption-request lifecycle behind an authentication guard."""

__version__ = "0.1.0"
