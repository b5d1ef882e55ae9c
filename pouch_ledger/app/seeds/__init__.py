from .loader import SeedBatch, SeedLoader, SeedRecord, SeedReport, ShardSeedStatus, load_batches, record

__all__ = [
    "SeedBatch",
    "SeedLoader",
    "SeedRecord",
    "SeedReport",
    "ShardSeedStatus",
    "load_batches",
    "record",
]
