"""
Resolución de rutas de configuración y proyecto.

- config_root(): directorio de configuración del usuario (~/.wasplane/).
- project_base(): directorio base del proyecto (para cargar .env).

El core NO escribe en disco; solo expone estas rutas.
"""

import os
from pathlib import Path
from typing import Optional


WASPLANE_CONFIG_ROOT = Path.home() / ".wasplane"


def config_root() -> Path:
    """
    Directorio de configuración de wasplane.
    WASPLANE_CONFIG_ROOT lo sobrescribe (útil en tests y CI).
    """
    explicit = os.environ.get("WASPLANE_CONFIG_ROOT", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return WASPLANE_CONFIG_ROOT


def config_file() -> Path:
    return config_root() / "config.yaml"


def project_base() -> Optional[Path]:
    """
    Directorio base del proyecto (donde podría existir .env).
    Resolución: WASPLANE_PROJECT_ROOT → cwd o padres con .env → None.
    """
    explicit = os.environ.get("WASPLANE_PROJECT_ROOT", "").strip()
    if explicit:
        return Path(explicit).expanduser().resolve()

    cwd = Path.cwd()
    for d in [cwd, *cwd.parents]:
        if (d / ".env").exists():
            return d.resolve()
    return None
