"""Shared constants for midprovisioner."""

PLACEHOLDER_INSTANCE = "InstanceName"
PLACEHOLDER_DISPLAY_NAME = "MID-Server-Name"
PLACEHOLDER_USERNAME = "demo.mid"
PLACEHOLDER_PASSWORD = "secret"

REQUIRED_TOOLS = ("docker",)

INSTANCE_URL_TEMPLATE = "https://{instance}.service-now.com/"
VERSION_QUERY_PATH = (
    "api/now/table/sys_properties"
    "?sysparm_query=name=mid.version&sysparm_fields=value&sysparm_limit=1"
)
BUNDLE_NAME = "mid-linux-container-recipe"
BUNDLE_URL_TEMPLATE = (
    "https://install.service-now.com/glide/distribution/builds/package/app-signed/"
    "{bundle}/{year}/{month}/{day}/{bundle}.{release}.linux.x86-64.zip"
)
BUNDLE_FILE_TEMPLATE = "{bundle}.{release}.linux.x86-64.zip"

# Real bundles are around 90 KB.
MIN_BUNDLE_SIZE = 10000
CONNECT_TIMEOUT_SECONDS = 30.0
DOWNLOAD_TIMEOUT_SECONDS = 300.0

RECIPE_DIR_NAME = "recipe"
RECIPE_BUILD_FILE = "Dockerfile"
EXPORT_DIR_NAME = "export"
CONTAINER_EXPORT_DIR = "/opt/snc_mid_server/agent/export"
CONSOLE_SCRIPT_NAME = "console.sh"
COMPOSE_FILE_NAME = "docker-compose.yaml"
COMPOSE_FILE_NAMES = ("docker-compose.yaml", "docker-compose.yml")
DEFAULT_CONFIG_FILE = ".midprovisioner.yml"

EXPORT_DIR_MODE = 0o777
