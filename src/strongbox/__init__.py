"""
strongbox - personal secret store

Keeps named secrets as individually encrypted files in a hierarchical
namespace, with key rotation and a git-backed change history.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("strongbox")
except PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "__version__",
]
