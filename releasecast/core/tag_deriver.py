"""Tag derivation: artifact file names to image tags and manifest keys.

All functions here are pure.  A tag looks like::

    {registry}/{product}[-{edition}]-image-tags:{version}[-ubuntu]-{arch}

and its manifest key is the same string with the ``-image-tags`` channel
suffix removed and the trailing ``-{arch}`` cut off, so every architecture
of one release and base family shares a key::

    docker.io/grafana/grafana-image-tags:9.5.0-amd64  ->  docker.io/grafana/grafana:9.5.0
    docker.io/grafana/grafana-image-tags:9.5.0-arm64  ->  docker.io/grafana/grafana:9.5.0
"""

from __future__ import annotations

import logging
import posixpath
import re

from releasecast.core.errors import InvalidArtifactNameError, InvalidTagError
from releasecast.models.artifacts import (
    ArtifactIdentity,
    BaseImage,
    DerivedTag,
    ImagePublishOptions,
)

logger = logging.getLogger(__name__)

CHANNEL_SUFFIX = "-image-tags"
MANIFEST_SEPARATOR = "-"
DISTRIBUTION_MARKER = "ubuntu"

_BASE_SUFFIXES: dict[BaseImage, str] = {
    BaseImage.ALPINE: "",
    BaseImage.UBUNTU: "-ubuntu",
}

_ARCHES = r"amd64|arm64|arm(?:[-_]?v?[5-7])?|386|s390x|ppc64le|riscv64"
_EXTENSIONS = (
    r"(?:\.ubuntu)?(?:\.docker)?\.tar\.gz|\.tgz|\.zip|\.deb|\.rpm|\.exe|\.msi"
)

_ARTIFACT_NAME = re.compile(
    r"^(?P<name>[a-z][a-z0-9]*(?:-[a-z][a-z0-9]*)*?)"
    r"[-_]v?(?P<version>\d+\.\d+\.\d+(?:[-+](?!ubuntu)[A-Za-z][0-9A-Za-z.+-]*?)?)"
    r"(?:[-_](?P<build_id>\d+))?"
    r"(?:[-_](?P<os>linux|darwin|windows))?"
    rf"[-_](?P<arch>{_ARCHES})"
    r"(?:[-_]ubuntu)?"
    rf"(?P<extension>{_EXTENSIONS})$"
)


def _normalize_arch(arch: str) -> str:
    # "arm_7", "arm-v7", "armv7" -> "armv7"
    if arch.startswith("arm") and arch not in ("arm64", "arm"):
        return "armv" + arch[-1]
    return arch


def parse_artifact_name(name: str) -> ArtifactIdentity:
    """Parse an artifact file name into its semantic identity.

    Both ``_`` and ``-`` separated names are accepted::

        grafana-9.5.0-amd64.tar.gz
        grafana-enterprise_10.0.0_123_linux_arm64.tar.gz
        grafana_10.0.0-beta1_123_linux_arm_7.ubuntu.docker.tar.gz

    Raises
    ------
    InvalidArtifactNameError
        If the name does not match the expected layout.
    """
    filename = posixpath.basename(name.replace("\\", "/"))
    match = _ARTIFACT_NAME.match(filename)
    if match is None:
        raise InvalidArtifactNameError(
            f"Cannot derive an identity from artifact name {name!r}"
        )

    product, _, edition = match.group("name").partition("-")
    return ArtifactIdentity(
        product=product,
        edition=edition,
        version=match.group("version"),
        build_id=match.group("build_id") or "",
        os=match.group("os") or "",
        arch=_normalize_arch(match.group("arch")),
        extension=match.group("extension"),
    )


def base_image_for(name: str) -> BaseImage:
    """Classify the base image family by the distribution marker in *name*."""
    if DISTRIBUTION_MARKER in name:
        return BaseImage.UBUNTU
    return BaseImage.ALPINE


def image_repositories(identity: ArtifactIdentity, edition: str | None = None) -> list[str]:
    """Return the repositories an artifact is published to.

    The default edition goes to both ``{product}`` and ``{product}-oss``;
    any other edition goes to ``{product}-{edition}`` only.
    """
    edition = identity.edition if edition is None else edition
    if edition:
        return [f"{identity.product}-{edition}"]
    return [identity.product, f"{identity.product}-oss"]


def image_tags(
    base: BaseImage,
    registry: str,
    identity: ArtifactIdentity,
    edition: str | None = None,
) -> list[str]:
    """Return every per-variant tag an artifact should receive."""
    registry = registry.rstrip("/")
    suffix = _BASE_SUFFIXES[base]
    return [
        f"{registry}/{repo}{CHANNEL_SUFFIX}:{identity.version}{suffix}"
        f"{MANIFEST_SEPARATOR}{identity.arch}"
        for repo in image_repositories(identity, edition)
    ]


def manifest_key(tag: str) -> str:
    """Return the manifest a per-variant tag rolls up into.

    Removes the channel suffix, then discards everything from the last
    remaining separator onward.

    Raises
    ------
    InvalidTagError
        If no separator remains after removing the channel suffix.
    """
    stripped = tag.replace(CHANNEL_SUFFIX, "")
    head, separator, _ = stripped.rpartition(MANIFEST_SEPARATOR)
    if not separator or not head:
        raise InvalidTagError(f"Tag {tag!r} has no {MANIFEST_SEPARATOR!r} to split a manifest from")
    return head


def derive_image_tags(name: str, options: ImagePublishOptions) -> list[DerivedTag]:
    """Derive every tag and manifest key for one artifact name."""
    identity = parse_artifact_name(name)
    base = base_image_for(name)
    derived = [
        DerivedTag(artifact_name=name, tag=tag, manifest=manifest_key(tag), base=base)
        for tag in image_tags(base, options.registry, identity, options.edition)
    ]
    logger.debug("Derived %d tag(s) for %s", len(derived), name)
    return derived
