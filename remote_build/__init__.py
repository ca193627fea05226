"""Remote build bridge.

Keeps the source tree local, compiles on a remote host over SSH, and
brings the build output back.
"""

__version__ = "0.1.0"
