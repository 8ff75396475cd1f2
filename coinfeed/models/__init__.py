from coinfeed.models.assets import AssetExtended, HistoryPoint, NormalizedAsset
from coinfeed.models.news import NormalizedNewsArticle, sort_newest_first

__all__ = [
    'AssetExtended',
    'HistoryPoint',
    'NormalizedAsset',
    'NormalizedNewsArticle',
    'sort_newest_first',
]
