"""FSHA shader asset container tools.

Packages shader source code (HLSL, GLSL, MSL, ...) and precompiled shader
bytecode (DXBC, DXIL, SPIR-V, Metal archives) into a single binary asset and
selects, at load time, the variant usable on the running platform.

Prefer the functional API in :mod:`fsha.api`; the command line entry point
lives in :mod:`fsha.cli`.
"""

from ._version import __version__  # noqa: F401

__all__ = ["__version__"]
