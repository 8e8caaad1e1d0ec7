"""Constants shared across bundleinstall domain models."""

DEFAULT_PACKAGING = "jar"
SNAPSHOT_SUFFIX = "-SNAPSHOT"
COORDINATE_SEPARATOR = ":"
COORDINATE_FORMAT = "groupId:artifactId:version[:packaging[:classifier]]"

UPDATE_POLICY_ALWAYS = "always"
UPDATE_POLICY_DAILY = "daily"
UPDATE_POLICY_NEVER = "never"
UPDATE_POLICY_INTERVAL = "interval"

CHECKSUM_POLICY_FAIL = "fail"
CHECKSUM_POLICY_WARN = "warn"
CHECKSUM_POLICY_IGNORE = "ignore"

REPOSITORY_ID_SEPARATOR = "::"
LAST_UPDATED_SUFFIX = ".lastUpdated"
ERROR_KEY_SUFFIX = ".error"
