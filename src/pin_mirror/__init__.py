"""Mirror a local directory tree onto a Pinata pinning account."""

__version__ = "0.3.0"
