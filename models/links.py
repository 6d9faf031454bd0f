"""Split a skeleton into links: maximal runs of non-vertex pixels."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

import numpy as np

from .features import FeatureSet, Pixel, effective_neighbors

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Link:
    """Connected run of skeleton pixels between feature points (unordered)."""

    id: int
    pixels: tuple[Pixel, ...]

    @property
    def size(self) -> int:
        return len(self.pixels)


@dataclass(frozen=True, slots=True)
class LinkSet:
    links: dict[int, Link]
    labels: np.ndarray  # vertex ids on vertex pixels, link ids on link pixels

    def sizes(self) -> dict[int, int]:
        return {link_id: link.size for link_id, link in self.links.items()}

    def link_at(self, pixel: Pixel) -> int | None:
        value = int(self.labels[pixel])
        return value if value in self.links else None


def segment_links(mask: np.ndarray, features: FeatureSet) -> LinkSet:
    """Label every non-vertex component of ``mask`` as a link.

    Components are grown over the thin-skeleton adjacency of the *full*
    skeleton, so two arms whose end pixels only meet diagonally across a
    removed vertex pixel stay separate links. Link ids continue after the
    last vertex id and follow the row-major order of each link's first pixel.
    """

    mask = np.asarray(mask, dtype=bool)
    labels = features.labels.copy()
    remainder = mask & (labels == 0)

    links: dict[int, Link] = {}
    next_id = features.max_id + 1
    for start in np.argwhere(remainder):
        seed = (int(start[0]), int(start[1]))
        if labels[seed]:
            continue
        labels[seed] = next_id
        component: list[Pixel] = []
        queue: deque[Pixel] = deque([seed])
        while queue:
            current = queue.popleft()
            component.append(current)
            for neighbor in effective_neighbors(mask, current):
                if not remainder[neighbor] or labels[neighbor]:
                    continue
                labels[neighbor] = next_id
                queue.append(neighbor)
        links[next_id] = Link(id=next_id, pixels=tuple(sorted(component)))
        next_id += 1

    logger.debug("Segmented %d links from %d link pixels", len(links), int(remainder.sum()))
    return LinkSet(links=links, labels=labels)


def link_ends(mask: np.ndarray, link: Link) -> tuple[Pixel, ...]:
    """Return the chain ends of ``link`` (pixels with at most one in-link neighbor).

    A single-pixel link yields one end; a link that closes on itself yields none.
    """

    members = set(link.pixels)
    if len(members) == 1:
        return (link.pixels[0],)
    ends = [
        pixel
        for pixel in link.pixels
        if sum(1 for n in effective_neighbors(mask, pixel) if n in members) <= 1
    ]
    if len(ends) > 2:
        ends = [ends[0], ends[-1]]
    return tuple(ends)


__all__ = ["Link", "LinkSet", "link_ends", "segment_links"]
