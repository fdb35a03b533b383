"""Shared constants for octl."""

DIR_MODE = 0o700
FILE_MODE = 0o600

SETTINGS_FILE_NAME = "octl.json"
REFERENCE_FILE_NAME = "octl-reference.md"
CONFIG_FILE_NAME = ".octl.yml"

DEFAULT_ENVIRONMENT = "production"
DEFAULT_DROPLET_NAME = "olympusoss-prod"
DEFAULT_REGION = "nyc1"
DEFAULT_SIZE = "s-2vcpu-4gb"
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PORT = 22
DEFAULT_DEPLOY_PATH = "/opt/olympusoss/prod"
DEFAULT_APP_REPOS = ("athena", "hera", "site")
DEPLOY_WORKFLOW = "deploy.yml"

SSH_KEY_NAME = "olympusoss-deploy"
FIREWALL_NAME = "olympusoss-firewall"
DROPLET_IMAGE = "ubuntu-24-04-x64"

# Subdomains served by the platform; each gets an A record pointing at the droplet.
APP_SUBDOMAINS = (
    "login.ciam",
    "login.iam",
    "oauth.ciam",
    "oauth.iam",
    "admin.ciam",
    "admin.iam",
    "olympus",
)
DNS_TTL = 3600

NEON_DATABASES = ("ciam_kratos", "ciam_hydra", "iam_kratos", "iam_hydra")
NEON_PG_VERSION = 17

MIN_SECRET_LENGTH = 8
