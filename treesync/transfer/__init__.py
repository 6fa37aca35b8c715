"""
Transfer Layer.

This package moves file content and special content from the remote service
into the offline directory.
"""

from .downloader import Downloader, close_connection_pool, offline_path

__all__ = ["Downloader", "close_connection_pool", "offline_path"]
