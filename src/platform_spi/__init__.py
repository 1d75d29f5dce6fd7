"""
Platform SPI Generator Package

Expands one declarative "platform SPI" module block into:
    - one platform-conditioned module inclusion per target
    - a fallback inclusion for every other platform
    - forwarding declarations in the enclosing scope
    - compile-time contract assertions

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Run-time platform detection
    - The contents of the per-platform source files
    - State shared between expansions

Platform selection is a compile-time decision made by the host compiler.
Every expansion is independent.
"""

__version__ = "0.1.0"
