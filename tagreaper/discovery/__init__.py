"""Tag filter input and resource discovery.

Classes:
    TagFilterReader: Streams tag filter documents from an input source
    ResourceDiscoverer: Resolves tag filter documents to resource ARNs
"""

from __future__ import annotations

__all__ = [
    "TagFilterReader",
    "ResourceDiscoverer",
]
