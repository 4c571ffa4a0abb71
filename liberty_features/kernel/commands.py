"""
Typed commands exchanged with the install kernel.

Each request type corresponds to one command of the key/value protocol and
every command answers with a KernelResponse, which keeps the three possible
outcomes explicit instead of inferring them from which keys were set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..shared import VerifyOption


class KernelStatus(Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class KernelResponse:
    """Outcome of a kernel command.

    EMPTY is a success without payload: for resolve it means there is nothing
    to install, whether the kernel said so (CWWKF1250I) or said nothing.
    """

    status: KernelStatus
    payload: tuple[Any, ...] = ()
    message: str | None = None

    @classmethod
    def success(cls, payload: list[Any] | tuple[Any, ...] = ()) -> KernelResponse:
        if not payload:
            return cls(KernelStatus.EMPTY)
        return cls(KernelStatus.SUCCESS, tuple(payload))

    @classmethod
    def empty(cls, message: str | None = None) -> KernelResponse:
        return cls(KernelStatus.EMPTY, message=message)

    @classmethod
    def failure(cls, message: str) -> KernelResponse:
        return cls(KernelStatus.ERROR, message=message)

    @property
    def ok(self) -> bool:
        return self.status is not KernelStatus.ERROR


@dataclass
class ResolveRequest:
    features: list[str]
    platforms: list[str]
    json_repositories: list[Path]
    accept_license: bool
    individual_esas: list[Path] = field(default_factory=list)


@dataclass
class PublicKeysRequest:
    verify_option: VerifyOption
    user_public_keys: list[dict[str, str]] = field(default_factory=list)


@dataclass
class VerifyRequest:
    artifacts: list[Path]
    verify_option: VerifyOption


@dataclass
class InstallRequest:
    artifact: Path
    accept_license: bool
    to_extension: str
