"""Technical-analysis data structures."""

from .price_bar_series import MultiAssetSeries, PriceBarSeries  # noqa: F401
