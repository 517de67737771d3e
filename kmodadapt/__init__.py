"""Rewrite a kernel module's symbol CRCs and vermagic string for a target kernel."""

__version__ = "0.1.0"