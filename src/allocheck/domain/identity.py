"""Normalise user input into a canonical on-chain address."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from eth_utils import to_checksum_address

from .errors import InvalidAddressFormat, NameNotFound
from .ports.progress import null_progress

if TYPE_CHECKING:
    from .model import CanonicalAddress
    from .ports.naming import NameResolver
    from .ports.progress import ProgressSink

log = getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"^(0[xX])?[0-9a-fA-F]{40}$")
NAME_PATTERN = re.compile(r"^[^\s.]+(\.[^\s.]+)+$")
DEFAULT_NAME_SUFFIXES = (".eth",)
ZERO_ADDRESS = "0x" + "0" * 40


def is_address_literal(text: str, *, name_suffixes: tuple[str, ...] = DEFAULT_NAME_SUFFIXES) -> bool:
    lowered = text.lower()
    if any(lowered.endswith(suffix) for suffix in name_suffixes):
        return False
    return ADDRESS_PATTERN.match(text) is not None


def canonicalize_address(text: str) -> CanonicalAddress:
    """Checksum a 40-hex-digit literal, with or without its ``0x`` prefix."""

    digits = text[2:] if text[:2].lower() == "0x" else text
    return to_checksum_address("0x" + digits.lower())


@dataclass(slots=True)
class IdentityResolver:
    names: NameResolver
    name_suffixes: tuple[str, ...] = DEFAULT_NAME_SUFFIXES
    progress: ProgressSink = field(default=null_progress)

    async def resolve(self, identity: str) -> CanonicalAddress:
        text = identity.strip()
        if not text:
            raise InvalidAddressFormat("Please enter an address or name")

        if is_address_literal(text, name_suffixes=self.name_suffixes):
            return canonicalize_address(text)

        lowered = text.lower()
        has_suffix = any(lowered.endswith(suffix) for suffix in self.name_suffixes)
        if (lowered.startswith("0x") and not has_suffix) or not NAME_PATTERN.match(text):
            raise InvalidAddressFormat(f"Invalid Ethereum address format: {text}")

        self.progress(f"resolving name {text}")
        log.debug("Resolving name %s", text)
        resolved = await self.names.address_for_name(text)
        if resolved is None or resolved.lower() == ZERO_ADDRESS:
            raise NameNotFound(text)
        log.info("Resolved %s to %s", text, resolved)
        return to_checksum_address(resolved)
