"""Agrostock Admin with Unfold theme."""

__all__ = [
    "BaseModelAdmin",
    "BaseTabularInline",
    "ReadOnlyAdminMixin",
    "format_quantity",
]


def __getattr__(name):
    """Lazy import to avoid importing unfold during app loading."""
    if name in __all__:
        from agrostock.contrib.admin_unfold import base
        return getattr(base, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
