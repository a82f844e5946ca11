"""Cache tags.

Learn: Queries label their cache entries with tags; mutations name the
tags they make stale. Matching is by type, optionally narrowed by id:

    invalidate Tag("Order")            → every entry providing any Order tag
    invalidate Tag("Order", "ORD-1")   → only entries providing Order:ORD-1

A bare string is shorthand for Tag(<string>).
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, Union

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class Tag:
    type: str
    id: Optional[str] = None

    def __str__(self) -> str:
        return self.type if self.id is None else f"{self.type}:{self.id}"


TagDescription = Union[str, Tag]
TagsSpec = Union[
    Sequence[TagDescription],
    Callable[[Any, Any, Any], Sequence[TagDescription]],
    None,
]


def as_tag(desc: TagDescription) -> Tag:
    if isinstance(desc, Tag):
        if desc.id is not None and not isinstance(desc.id, str):
            return Tag(desc.type, str(desc.id))
        return desc
    if isinstance(desc, str):
        return Tag(desc)
    raise TypeError(f"Not a tag description: {desc!r}")


def resolve_tags(
    spec: TagsSpec,
    result: Any,
    error: Any,
    arg: Any,
    tag_types: Iterable[str] = (),
) -> list[Tag]:
    """Evaluate a provides/invalidates spec into concrete tags.

    Tags whose type the slice doesn't declare are dropped with a warning.
    """
    if spec is None:
        return []
    descriptions = spec(result, error, arg) if callable(spec) else spec
    known = set(tag_types)
    tags = []
    for desc in descriptions or ():
        tag = as_tag(desc)
        if known and tag.type not in known:
            logger.warning("cache.unknown_tag_type", tag=str(tag))
            continue
        tags.append(tag)
    return tags


def matches(invalidated: Tag, provided: Tag) -> bool:
    if invalidated.type != provided.type:
        return False
    return invalidated.id is None or invalidated.id == provided.id
