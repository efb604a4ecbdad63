"""
Grouping engine for duplicate detection.

Two pure passes over crawl results:

1. Name grouping - entities keyed by identity name, case-insensitive.
2. Fingerprint bucketing - within one name group, entities with identical
   version info, size and machine type share a bucket.

Neither pass mutates entities. Sorted order is descending by the text
concatenation of assembly version and file version, ties broken by path, so
bucket contents do not depend on the order files were discovered in.
"""

from collections.abc import Iterable, Mapping

from assembly_crawler.engines.crawl.model import AssemblyInfo, EntityTable


def name_key(entity: AssemblyInfo) -> str:
    return entity.identity_name.lower()


def sort_descending(entities: Iterable[AssemblyInfo]) -> list[AssemblyInfo]:
    """
    Canonical ordering used for name groups and fingerprint buckets.

    String comparison, not numeric: "9.0" sorts before "10.0" in descending
    order.
    """
    by_path = sorted(entities, key=lambda e: e.full_path)
    return sorted(by_path, key=lambda e: e.version_sort_key, reverse=True)


def group_by_name(
    source: EntityTable | Iterable[AssemblyInfo],
    managed_only: bool = False,
    sort: bool = True,
) -> dict[str, list[AssemblyInfo]]:
    """
    Partition entities by identity name.

    Args:
        source: Crawl result or entities in discovery order
        managed_only: Keep only managed images
        sort: Order each group descending by version; otherwise keep
              discovery order

    Returns:
        Lowercased name -> entities, groups in first-appearance order
    """
    entities = source.entities if isinstance(source, EntityTable) else source

    groups: dict[str, list[AssemblyInfo]] = {}
    for entity in entities:
        if managed_only and not entity.is_managed:
            continue
        groups.setdefault(name_key(entity), []).append(entity)

    if sort:
        return {name: sort_descending(members) for name, members in groups.items()}
    return groups


def bucket_by_fingerprint(entities: Iterable[AssemblyInfo]) -> dict[str, list[AssemblyInfo]]:
    """
    Bucket entities of one name group by structural fingerprint.

    Entities are inserted in descending-sorted order, so both bucket order and
    the order inside each bucket are deterministic.
    """
    buckets: dict[str, list[AssemblyInfo]] = {}
    for entity in sort_descending(entities):
        buckets.setdefault(entity.fingerprint, []).append(entity)
    return buckets


def flatten_groups(groups: Mapping[str, list[AssemblyInfo]]) -> list[AssemblyInfo]:
    """All entities of a grouping, group by group."""
    return [entity for members in groups.values() for entity in members]
