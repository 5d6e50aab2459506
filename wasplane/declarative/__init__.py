"""
Sistema declarativo: manifiestos YAML → declaraciones validadas.
"""

from wasplane.declarative.loader import ManifestLoader

__all__ = ["ManifestLoader"]
