"""Remote object listing backends."""

from bucketindex.storage.base import MemoryObjectLister, ObjectDescriptor, ObjectLister
from bucketindex.storage.s3_lister import S3ObjectLister

__all__ = [
    "MemoryObjectLister",
    "ObjectDescriptor",
    "ObjectLister",
    "S3ObjectLister",
]
