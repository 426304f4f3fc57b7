"""Plugin marketplace: catalogue generator and compatibility-aware store.

Two halves sharing one entry model:
  - Generator: crawls plugin releases, keeps the newest plugin version per
    minimum server version, and writes the ``plugins.json`` database.
  - Store: loads that database all-or-nothing and answers filtered,
    sorted and paginated queries over it.
"""

__version__ = "0.1.0"
__description__ = "Plugin catalogue generator and compatibility-aware query store"

from plugin_marketplace.core.catalogue import Catalogue, CatalogueHolder
from plugin_marketplace.core.query_engine import QueryEngine
from plugin_marketplace.models.plugin import PluginEntry
from plugin_marketplace.models.query import PluginQuery, QueryResult

__all__ = [
    "Catalogue",
    "CatalogueHolder",
    "PluginEntry",
    "PluginQuery",
    "QueryEngine",
    "QueryResult",
    "__version__",
]
