#!/usr/bin/env python3
"""
Image reference normalization.

Pull events and pod specs name the same image in different ways:
- Tagged: "quay.io/calico/cni:v3.27.0"
- Pinned by digest: "quay.io/calico/cni@sha256:4bf1..."
- Both: "quay.io/calico/cni:v3.27.0@sha256:4bf1..."

Normalizing strips the tag and digest so both sides can be joined on the
repository name.
"""

DIGEST_SEPARATOR = "@sha256:"


def normalize_image_reference(image: str) -> str:
    """Strip the digest and tag from an image reference.

    A colon only separates a tag when it appears after the last '/', so
    registry ports are kept ("host:5000/app:1.0" -> "host:5000/app").

    Args:
        image: Image reference, possibly with tag and/or digest

    Returns:
        Normalized identity, or "" when nothing is left
    """
    if not image:
        return ""

    image = image.strip()

    digest_index = image.find(DIGEST_SEPARATOR)
    if digest_index != -1:
        image = image[:digest_index]

    name_start = image.rfind("/") + 1
    tag_index = image.find(":", name_start)
    if tag_index != -1:
        image = image[:tag_index]

    return image.strip()
