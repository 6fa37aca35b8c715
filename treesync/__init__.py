"""
treesync - keeps favorite branches of a remote content tree available offline.
"""

__version__ = "0.4.0"
