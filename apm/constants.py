"""Constants shared across apm."""

APP_NAME = "apm"

CORE_ALIAS = "MetalBlockchain/metal-plugins-core"
CORE_URL = "https://github.com/MetalBlockchain/metal-plugins-core.git"
CORE_BRANCH = "master"

QUALIFIED_NAME_DELIMITER = ":"
ALIAS_DELIMITER = "/"

# A SourceInfo with this commit has never been synchronized.
ZERO_HASH = "0" * 40

DB_DIR = "db"
DB_FILE = "apm.db"
REPOSITORY_DIR = "repositories"
TMP_DIR = "tmp"
