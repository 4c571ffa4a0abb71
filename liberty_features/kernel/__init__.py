"""
Install kernel access.

This package locates the install-map jar matching the runtime, opens the
kernel it hosts and drives resolve, verify and install commands through it.
"""

from .adapter import ChannelFactory, InstallKernel, MapBasedInstallKernel, load_install_kernel
from .cache import jar_caching_disabled, jar_caching_enabled
from .commands import InstallRequest, KernelResponse, KernelStatus, PublicKeysRequest, ResolveRequest, VerifyRequest
from .locator import find_kernel_jar, get_override_bundle_descriptor, load_install_jar

__all__ = [
    "ChannelFactory",
    "InstallKernel",
    "InstallRequest",
    "KernelResponse",
    "KernelStatus",
    "MapBasedInstallKernel",
    "PublicKeysRequest",
    "ResolveRequest",
    "VerifyRequest",
    "find_kernel_jar",
    "get_override_bundle_descriptor",
    "jar_caching_disabled",
    "jar_caching_enabled",
    "load_install_jar",
    "load_install_kernel",
]
