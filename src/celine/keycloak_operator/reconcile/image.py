"""Keycloak image selection.

The patch version of the Keycloak image may be raised on the cluster outside
of the operator. Such an upgrade is kept as long as it stays on the pinned
repository and major.minor line; anything else reverts to the pinned image.
An explicit image override on the custom resource always wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageRef:
    """An image reference split into repository and version components.

    E.g. ``quay.io/keycloak/keycloak:7.0.1`` ->
    repository ``quay.io/keycloak/keycloak``, major ``7``, minor ``0``, patch ``1``.
    Missing components are empty strings.
    """

    repository: str
    major: str = ""
    minor: str = ""
    patch: str = ""

    @classmethod
    def parse(cls, image: str) -> "ImageRef":
        """Parse an image reference.

        The tag is whatever follows the last ``:`` after the last ``/`` (so a
        registry port is not mistaken for a tag). Digest references have no tag.
        """
        name = image.split("@", 1)[0] if "@" in image else image
        tag = ""
        slash = name.rfind("/")
        colon = name.rfind(":")
        if colon > slash and "@" not in image:
            name, tag = name[:colon], name[colon + 1 :]

        parts = tag.split(".", 2) if tag else []
        parts += [""] * (3 - len(parts))
        return cls(repository=name, major=parts[0], minor=parts[1], patch=parts[2])

    @property
    def patch_number(self) -> int | None:
        """The patch component as an integer, or None if it isn't one."""
        try:
            return int(self.patch)
        except ValueError:
            return None

    @property
    def version(self) -> str:
        """The version tag, e.g. ``7.0.1``."""
        return ".".join(p for p in (self.major, self.minor, self.patch) if p)


def select_image(observed: str | None, pinned: str, override: str | None = None) -> str:
    """Decide which Keycloak image the reconciled workload runs.

    Args:
        observed: Image currently running on the cluster (None if unknown)
        pinned: Image pinned by this operator release
        override: Explicit image override from the custom resource

    Returns:
        The override if set. Otherwise the observed image if it is a strictly
        higher patch release of the pinned repository/major/minor, else the
        pinned image.
    """
    if override:
        return override
    if not observed or observed == pinned:
        return pinned

    current = ImageRef.parse(observed)
    wanted = ImageRef.parse(pinned)

    current_patch = current.patch_number
    wanted_patch = wanted.patch_number
    if current_patch is None or wanted_patch is None:
        logger.debug("Image %s has no numeric patch version, using %s", observed, pinned)
        return pinned

    if (
        current.repository == wanted.repository
        and current.major == wanted.major
        and current.minor == wanted.minor
        and current_patch > wanted_patch
    ):
        logger.info("Keeping patched cluster image %s (pinned %s)", observed, pinned)
        return observed

    return pinned
