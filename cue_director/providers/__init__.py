"""
Providers - Clients for the director's external collaborators.
"""

from cue_director.providers.base import (
    SearchProvider,
    DecisionService,
    CatalogProvider,
    AssetFetcher,
    ManagedHttpClient,
)

from cue_director.providers.backend import (
    BackendClient,
    HttpAssetFetcher,
)

from cue_director.providers.freesound import (
    FreesoundProvider,
    simplify_query,
)

__all__ = [
    "SearchProvider",
    "DecisionService",
    "CatalogProvider",
    "AssetFetcher",
    "ManagedHttpClient",
    "BackendClient",
    "HttpAssetFetcher",
    "FreesoundProvider",
    "simplify_query",
]
