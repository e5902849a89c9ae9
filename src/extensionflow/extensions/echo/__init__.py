"""
Echo extension

Returns the input message; the reference implementation of BaseExtension.
"""

from extensionflow.extensions.echo.echo_extension import ECHO_MANIFEST, EchoExtension

__all__ = ["EchoExtension", "ECHO_MANIFEST"]
