"""
builder_pyc — reproducible external compilation of Python sources to .pyc.

One source file in, the compiler's derived artifacts out, addressed in the
caller's virtual path space.  The compiler itself is an external process.
"""

__version__ = "1.0.0"
ADAPTER_VERSION = "v1"
PACKAGE_NAME = "builder_pyc"
SCHEMA_VERSION = "1.0"
