"""nexus_api."""

from .monitoring.logger import configure_logger

# Console logging until create_app() reconfigures it from Settings
configure_logger()
