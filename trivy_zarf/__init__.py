"""Scan every container image in a Zarf package with Trivy."""

__version__ = "0.1.0"
