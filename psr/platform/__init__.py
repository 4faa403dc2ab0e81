"""Platform abstraction layer: subprocesses, HTTP, files, user paths."""

from .files import atomic_write_bytes, atomic_write_text
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .paths import home, user_config_dir
from .process import ProcessError, run

__all__ = [
    # files
    "atomic_write_bytes",
    "atomic_write_text",
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # paths
    "home",
    "user_config_dir",
    # process
    "ProcessError",
    "run",
]
