"""Read-only query selectors."""

from discount_kernel.selectors.source_selector import SqlDiscountSourceStore

__all__ = ["SqlDiscountSourceStore"]
