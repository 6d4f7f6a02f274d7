"""verity - release decisions for security-patched Helm charts.

Tracks which container images referenced by Helm charts were rebuilt with
security fixes and decides which charts need a new release.
"""

__version__ = "1.0.0"
