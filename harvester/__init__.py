"""Review harvester: pagination-aware product-review extraction."""

__version__ = "0.1.0"
