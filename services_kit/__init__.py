"""Services Kit

Client-side building blocks for browser apps: OAuth v2 token lifecycle
management and remote messaging rule evaluation.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("services-kit")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.1.0"
__author__ = "Services Kit"
