"""
wasplane - Control Plane declarativo para IBM WebSphere Application Server.
"""

__version__ = "1.0.0"
