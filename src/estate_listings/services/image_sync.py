"""Diffing a listing's persisted image set against a requested one."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from estate_listings.models import ListingImageInput


@dataclass(frozen=True)
class ImageSyncPlan:
    """Images to remove and add so the persisted set matches the target."""

    to_delete: list[str] = field(default_factory=list)
    to_add: list[ListingImageInput] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.to_delete and not self.to_add


def plan_image_sync(
    persisted_ids: Iterable[str], target: Iterable[ListingImageInput]
) -> ImageSyncPlan:
    """Compute ``persisted - target`` deletions and ``target - persisted`` additions.

    Images are identified by public id only; an image present on both sides is
    left alone even if its URL differs. Order follows the inputs.
    """
    persisted = list(dict.fromkeys(persisted_ids))
    target_by_id: dict[str, ListingImageInput] = {}
    for img in target:
        target_by_id.setdefault(img.public_id, img)

    persisted_set = set(persisted)
    return ImageSyncPlan(
        to_delete=[pid for pid in persisted if pid not in target_by_id],
        to_add=[img for pid, img in target_by_id.items() if pid not in persisted_set],
    )
