"""
crashpost - Crash and exception reporting client.

Packs stack traces, minidumps and attachments into a crash archive and
submits them to a BugSplat-compatible crash aggregation service.
"""

__version__ = "0.3.0"
__author__ = "crashpost contributors"

from crashpost.client import CrashPostClient, CrashPostError
from crashpost.options import ExceptionPostOptions, MinidumpPostOptions, PostOptions
from crashpost.reporter import CrashReporter
from crashpost.results import PostResult
from crashpost.storage import ObjectStorageClient, ObjectStorageClientFactory
from crashpost.transport import HttpClient, HttpClientFactory

__all__ = [
    "__version__",
    "CrashPostClient",
    "CrashPostError",
    "CrashReporter",
    "ExceptionPostOptions",
    "HttpClient",
    "HttpClientFactory",
    "MinidumpPostOptions",
    "ObjectStorageClient",
    "ObjectStorageClientFactory",
    "PostOptions",
    "PostResult",
]
