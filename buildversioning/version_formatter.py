"""
Version string formatting.

Pure functions mapping a version policy and a build number to the generated,
product and semantic version strings. No database access.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple

from buildversioning.constants import (
    GENERATED_VERSION_PART_COUNT,
    RELEASE_TYPE_PRE_RELEASE,
    RELEASE_TYPE_RELEASE,
    RELEASE_TYPE_RELEASE_CANDIDATE,
)
from buildversioning.exceptions import InvalidPolicyException, UnsupportedReleaseTypeException
from buildversioning.utils import join_version_parts


class ReleaseType(enum.Enum):
    PRE_RELEASE = RELEASE_TYPE_PRE_RELEASE
    RELEASE_CANDIDATE = RELEASE_TYPE_RELEASE_CANDIDATE
    RELEASE = RELEASE_TYPE_RELEASE

    @classmethod
    def parse(cls, value) -> "ReleaseType":
        """Accept a ReleaseType or its name in any letter case"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        raise UnsupportedReleaseTypeException(value)

    @property
    def semantic_version_suffix(self) -> str:
        return _SUFFIXES[self]


_SUFFIXES = {
    ReleaseType.PRE_RELEASE: "-pre",
    ReleaseType.RELEASE_CANDIDATE: "-rc",
    ReleaseType.RELEASE: "",
}


@dataclass(frozen=True)
class FormattedVersion:
    generated_parts: Tuple[int, int, int, int]
    product_parts: Tuple[int, int, int, int]
    version: str
    product_version: str
    semantic_version: str
    semantic_version_suffix: str
    release_type: ReleaseType


def validate_build_number_position(position) -> int:
    if isinstance(position, bool) or not isinstance(position, int) or not 1 <= position <= GENERATED_VERSION_PART_COUNT:
        raise InvalidPolicyException(
            f"The generated build number position {position!r} is out of the allowed range "
            f"1..{GENERATED_VERSION_PART_COUNT}."
        )
    return position


def substitute_build_number(parts, position, build_number) -> Tuple[int, int, int, int]:
    """Replace the slot at the 1-based position with the build number"""
    generated = list(parts)
    generated[position - 1] = build_number
    return tuple(generated)


def format_version(policy, build_number: int) -> FormattedVersion:
    """Build the version strings for one issued build number.

    The policy is any object exposing ``generated_build_number_position``,
    ``generated_version_parts``, ``product_version_parts`` and
    ``release_type`` (a ProjectConfig row works).

    The semantic version keeps the generated parts up to and including the
    build number slot, then appends the release type suffix. Position 3 with
    parts 1.0.0.0 and PreRelease gives ``1.0.42.0`` and ``1.0.42-pre`` for
    build 42.
    """
    position = validate_build_number_position(policy.generated_build_number_position)
    release_type = ReleaseType.parse(policy.release_type)

    constant_parts = tuple(policy.generated_version_parts)
    product_parts = tuple(policy.product_version_parts)
    if len(constant_parts) != GENERATED_VERSION_PART_COUNT or len(product_parts) != GENERATED_VERSION_PART_COUNT:
        raise InvalidPolicyException(f"A version policy needs exactly {GENERATED_VERSION_PART_COUNT} parts per version.")

    generated_parts = substitute_build_number(constant_parts, position, build_number)
    suffix = release_type.semantic_version_suffix

    return FormattedVersion(
        generated_parts=generated_parts,
        product_parts=product_parts,
        version=join_version_parts(generated_parts),
        product_version=join_version_parts(product_parts),
        semantic_version=join_version_parts(generated_parts[:position]) + suffix,
        semantic_version_suffix=suffix,
        release_type=release_type,
    )
