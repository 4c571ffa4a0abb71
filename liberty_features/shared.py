from __future__ import annotations

from enum import Enum


class VerifyOption(Enum):
    """Signature verification strictness for downloaded features."""

    ENFORCE = "enforce"
    WARN = "warn"
    SKIP = "skip"
    ALL = "all"


OPEN_LIBERTY_GROUP_ID = "io.openliberty.features"
OPEN_LIBERTY_PRODUCT_ID = "io.openliberty"
CLOSED_LIBERTY_PRODUCT_ID = "com.ibm.websphere.appserver"

REPOSITORY_RESOLVER_ARTIFACT_ID = "repository-resolver"
INSTALL_MAP_ARTIFACT_ID = "install-map"
INSTALL_MAP_PREFIX = "com.ibm.ws.install.map"
JAR_EXT = ".jar"

FEATURES_JSON_ARTIFACT_ID = "features"
TO_USER = "usr"

MIN_USER_FEATURE_VERSION = "21.0.0.11"
MIN_VERIFY_FEATURE_VERSION = "23.0.0.9"
MIN_VERSIONLESS_FEATURE_VERSION = "24.0.0.8"

PRODUCT_INFO_TIMEOUT = 300
CONTAINER_EXEC_TIMEOUT = 600
