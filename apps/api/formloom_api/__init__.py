"""Formloom API - multi-tenant form builder backend."""

__version__ = "0.3.0"
