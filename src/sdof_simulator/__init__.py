"""
SDOF Newmark simulator package.

We keep this __init__ lightweight on purpose so that
`import sdof_simulator` and `sdof-sim --help` work
without importing the numerical stack.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("sdof-newmark-simulator")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

__all__ = ["__version__"]
