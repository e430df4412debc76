"""Canonical content tree handed to the document store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


Scalar = Union[str, int, float, bool]


@dataclass(frozen=True, slots=True)
class ContentNode:
    """A freshly built node; never mutated once constructed."""

    text: str
    properties: dict[str, Scalar] = field(default_factory=dict)
    children: tuple["ContentNode", ...] = ()
