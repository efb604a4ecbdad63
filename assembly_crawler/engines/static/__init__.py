"""
Static inspection of images on disk.

- pe_header: managed/native classification and machine type
- metadata: version resource and resource-assembly classification
"""

from assembly_crawler.engines.static.metadata import (
    VersionMetadata,
    is_resource_file,
    read_version_metadata,
)
from assembly_crawler.engines.static.pe_header import (
    HeaderInfo,
    inspect_header,
    is_managed_image,
    machine_type,
)

__all__ = [
    "HeaderInfo",
    "VersionMetadata",
    "inspect_header",
    "is_managed_image",
    "is_resource_file",
    "machine_type",
    "read_version_metadata",
]
