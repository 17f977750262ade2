"""
Directory Package
=================

Optional lookup of room admins from an external HTTP service.

Main Components:
----------------
- client.py: httpx-based AdminDirectory with failure-tolerant fetch_admins()

Usage:
------
    from relay.directory import AdminDirectory
    directory = AdminDirectory("https://directory.example.com/admins")
    admins = await directory.fetch_admins("lobby")
"""

from .client import AdminDirectory, AdminDirectoryResponse

__all__ = ["AdminDirectory", "AdminDirectoryResponse"]
