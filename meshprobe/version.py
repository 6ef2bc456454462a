"""Two-part version numbers and the known platform, operator and control-plane versions."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = [
    "Version",
    "parse_version",
    "OCP_4_9",
    "OCP_4_10",
    "OCP_4_11",
    "OCP_4_12",
    "OCP_4_13",
    "OCP_4_14",
    "OCP_4_16",
    "OPERATOR_2_5_2",
    "OPERATOR_2_6_0",
    "OPERATOR_2_6_2",
    "SMCP_2_0",
    "SMCP_2_1",
    "SMCP_2_2",
    "SMCP_2_3",
    "SMCP_2_4",
    "SMCP_2_5",
    "SMCP_2_6",
]

_NUMBER = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True, order=True)
class Version:
    """A major.minor version; patch levels are ignored."""

    major: int
    minor: int

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}"


def parse_version(version: str) -> Version:
    """Parse strings such as ``v2.1``, ``2.1`` or ``4.10.0`` into a :class:`Version`.

    Raises :class:`ValueError` when the major or minor part is missing or not a number.
    """
    text = version[1:] if version.startswith("v") else version
    parts = text.split(".")
    if len(parts) < 2 or not all(_NUMBER.fullmatch(part) for part in parts[:2]):
        raise ValueError(f"invalid version: {text}")
    return Version(major=int(parts[0]), minor=int(parts[1]))


OCP_4_9 = parse_version("4.9.0")
OCP_4_10 = parse_version("4.10.0")
OCP_4_11 = parse_version("4.11.0")
OCP_4_12 = parse_version("4.12.0")
OCP_4_13 = parse_version("4.13.0")
OCP_4_14 = parse_version("4.14.0")
OCP_4_16 = parse_version("4.16.0")

OPERATOR_2_5_2 = parse_version("2.5.2")
OPERATOR_2_6_0 = parse_version("2.6.0")
OPERATOR_2_6_2 = parse_version("2.6.2")

SMCP_2_0 = parse_version("v2.0")
SMCP_2_1 = parse_version("v2.1")
SMCP_2_2 = parse_version("v2.2")
SMCP_2_3 = parse_version("v2.3")
SMCP_2_4 = parse_version("v2.4")
SMCP_2_5 = parse_version("v2.5")
SMCP_2_6 = parse_version("v2.6")