from .params import flatten_params  # noqa: F401

__all__ = ["flatten_params"]
