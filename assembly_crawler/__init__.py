"""
Assembly Crawler - inventory of managed and native images on disk.

Classifies every file under a directory by its PE header, reads version
metadata of managed assemblies and groups copies to expose duplicates.
"""

__version__ = "0.1.0"

from assembly_crawler.engines.crawl.crawler import DirectoryCrawler, crawl
from assembly_crawler.engines.crawl.grouping import bucket_by_fingerprint, group_by_name
from assembly_crawler.engines.crawl.model import AssemblyInfo, CrawlFailure, EntityTable
from assembly_crawler.engines.static.pe_header import is_managed_image, machine_type

__all__ = [
    "AssemblyInfo",
    "CrawlFailure",
    "DirectoryCrawler",
    "EntityTable",
    "bucket_by_fingerprint",
    "crawl",
    "group_by_name",
    "is_managed_image",
    "machine_type",
]
