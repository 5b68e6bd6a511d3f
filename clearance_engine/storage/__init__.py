from .cache_store import CacheStore, CsvCacheStore, InMemoryCacheStore
