"""Allow ``python -m ldap_migration``."""

import sys

from ldap_migration.main import main

sys.exit(main())
