"""
TubeDigest - asynchronous YouTube video summary service.

This package provides the job pipeline, metadata fetching, summarization
client, and plan-based credit gate behind the TubeDigest API.
"""

__version__ = "1.0.0"
__author__ = "TubeDigest Team"
