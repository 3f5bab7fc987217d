"""ldap_migration."""

from .monitoring.logger import configure_logger

# Configure logger with default settings (just console logging)
# File logging is enabled by the CLI once settings are loaded
configure_logger()
