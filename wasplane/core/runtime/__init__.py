"""
Runtime: configuración, estado de reconciliación y el driver de pases.

El estado real vive en los documentos XML de WebSphere; wasplane no guarda estado entre pases.
"""

from wasplane.core.runtime.resolver import config_root, project_base
from wasplane.core.runtime.settings import Settings, load_settings

__all__ = ["config_root", "project_base", "Settings", "load_settings"]
