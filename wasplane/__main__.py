"""
Punto de entrada: python -m wasplane
"""

from wasplane.cli.app import app

if __name__ == "__main__":
    app()
