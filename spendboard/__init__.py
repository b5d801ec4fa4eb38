"""Build-time data loaders and currency conversion for the spending dashboard."""

__version__ = "0.3.0"
