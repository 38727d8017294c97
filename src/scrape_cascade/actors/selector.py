"""Candidate selection: target domain → ordered actor descriptors."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from scrape_cascade.actors.config import DOMAIN_ACTORS, GENERIC_ACTOR
from scrape_cascade.core.models import ActorDescriptor, ScrapeTarget
from scrape_cascade.core.urls import domain_matches


def select_candidates(
    target: ScrapeTarget,
    table: Mapping[str, Sequence[ActorDescriptor]] = DOMAIN_ACTORS,
    generic: ActorDescriptor = GENERIC_ACTOR,
) -> list[ActorDescriptor]:
    """Return the ordered candidate list for *target*.

    Domain-specific descriptors whose table key matches ``target.domain``
    (exactly or as a parent domain) come first, sorted by ``priority`` with
    table order breaking ties.  Exactly one generic descriptor is appended
    last.  Pure and deterministic.

    Args:
        target: Target to route.
        table: Domain table; defaults to :data:`DOMAIN_ACTORS`.
        generic: Universal fallback descriptor.

    Returns:
        Non-empty list of descriptors ending with *generic*.
    """
    matched: list[ActorDescriptor] = []
    if target.domain:
        for pattern, descriptors in table.items():
            if domain_matches(target.domain, pattern):
                matched.extend(d for d in descriptors if not d.generic)

    seen: set[str] = set()
    ordered: list[ActorDescriptor] = []
    for descriptor in sorted(matched, key=lambda d: d.priority):
        if descriptor.actor_id in seen or descriptor.actor_id == generic.actor_id:
            continue
        seen.add(descriptor.actor_id)
        ordered.append(descriptor)

    ordered.append(generic)
    return ordered
