import logging
from typing import Final


__docformat__ = "google"
__all__ = ("DEFAULT_LOGGER",)

DEFAULT_LOGGER: Final[logging.Logger] = logging.getLogger("osm_extract")
DEFAULT_LOGGER.addHandler(logging.NullHandler())
