"""Domain layer for csvintake.

Submodules are imported directly (``csvintake.domain.duplicates`` and so on);
this package does not re-export them so the pure utilities can depend on
``csvintake.domain.entities`` without import cycles.
"""
