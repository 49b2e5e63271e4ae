"""
Derived links: edges computed from person attributes, never stored.

- stream: every pair of people whose `stream` matches after trimming and
  lowercasing gets one link, described by the capitalized stream label.
- interest: every pair of people gets one link per interest they share,
  described by that interest.

Everything here is a pure function of the people passed in. Output is sorted
and ids are derived from the sorted endpoint ids, so recomputing from the same
people (in any order) yields the same links with the same ids.
"""
import hashlib
from collections import defaultdict
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence

from models import Link, LinkType, Person


def derived_link_id(kind: str, id_a: str, id_b: str, discriminator: Optional[str] = None) -> str:
    """
    Stable identity for a derived link.

    The endpoint order doesn't matter: (a, b) and (b, a) map to the same id.
    The parts are hashed rather than joined with a separator so ids that
    themselves contain separators can't collide.
    """
    low, high = sorted((id_a, id_b))
    parts = [kind, low, high]
    if discriminator is not None:
        parts.append(discriminator)
    digest = hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()[:32]
    return f"{kind}-{digest}"


def normalize_stream(stream: Optional[str]) -> str:
    return (stream or "").strip().lower()


def stream_label(stream_key: str) -> str:
    return stream_key[:1].upper() + stream_key[1:]


def _unique_by_id(people: Iterable[Person]) -> List[Person]:
    by_id: Dict[str, Person] = {}
    for person in people:
        by_id.setdefault(person.id, person)
    return [by_id[person_id] for person_id in sorted(by_id)]


def _derived_link(kind: LinkType, source_id: str, target_id: str, description: str, link_id: str) -> Link:
    return Link(
        id=link_id,
        source_id=source_id,
        target_id=target_id,
        description=description,
        type=kind,
        created_at="",
        updated_at="",
    )


def generate_stream_links(people: Sequence[Person]) -> List[Link]:
    """One `stream` link per pair of people sharing a stream."""
    groups: Dict[str, List[Person]] = defaultdict(list)
    for person in _unique_by_id(people):
        key = normalize_stream(person.stream)
        if key:
            groups[key].append(person)

    links: List[Link] = []
    for key in sorted(groups):
        # Members are already sorted by id, so a is always the lower id
        for a, b in combinations(groups[key], 2):
            links.append(
                _derived_link(
                    LinkType.STREAM,
                    a.id,
                    b.id,
                    stream_label(key),
                    derived_link_id(LinkType.STREAM.value, a.id, b.id),
                )
            )
    return links


def generate_interest_links(people: Sequence[Person]) -> List[Link]:
    """One `interest` link per pair of people per shared interest."""
    members = [
        (person, {interest for interest in person.interests or [] if interest})
        for person in _unique_by_id(people)
    ]

    links: List[Link] = []
    for (a, a_interests), (b, b_interests) in combinations(members, 2):
        if not a_interests or not b_interests:
            continue
        for interest in sorted(a_interests & b_interests):
            links.append(
                _derived_link(
                    LinkType.INTEREST,
                    a.id,
                    b.id,
                    interest,
                    derived_link_id(LinkType.INTEREST.value, a.id, b.id, interest),
                )
            )
    return links


def derive_links(people: Sequence[Person]) -> List[Link]:
    """All derived links for a set of people: stream links, then interest links."""
    return generate_stream_links(people) + generate_interest_links(people)


def combine_links(manual_links: Sequence[Link], people: Sequence[Person]) -> List[Link]:
    """Manual links followed by freshly derived ones, as the canvas draws them."""
    return list(manual_links) + derive_links(people)
