"""Infra layer utilities."""

from .ua_pool import UserAgentPool

__all__ = ["UserAgentPool"]
