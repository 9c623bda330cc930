"""Service version lookup, cloning and validation."""

import logging

from edgewaf.api.client import EdgeApiClient
from edgewaf.errors import NoActiveVersionError
from edgewaf.utils.logging import get_logger


def get_active_version(
    api: EdgeApiClient,
    service_id: str,
    logger: logging.Logger | None = None,
) -> int:
    """Get the active version number of a service.

    Raises:
        NoActiveVersionError: If no version is active.
    """
    logger = logger or get_logger(__name__)
    for version in api.get_service_versions(service_id):
        if version.active:
            logger.info("Active version of service %s is %d", service_id, version.number)
            return version.number
    raise NoActiveVersionError(service_id)


def clone_version(
    api: EdgeApiClient,
    service_id: str,
    version: int,
    logger: logging.Logger | None = None,
) -> int:
    """Clone a version into a new draft and return its number."""
    logger = logger or get_logger(__name__)
    draft = api.clone_version(service_id, version)
    logger.info("New version %d created", draft.number)
    return draft.number


def validate_version(
    api: EdgeApiClient,
    service_id: str,
    version: int,
    logger: logging.Logger | None = None,
) -> bool:
    """Validate a draft version.

    Returns:
        True if the platform accepted the version.
    """
    logger = logger or get_logger(__name__)
    valid, message = api.validate_version(service_id, version)
    if not valid:
        logger.error("Version %d invalid: %s", version, message)
        return False
    logger.info("Config version %d validated. Remember to activate it", version)
    return True
