"""Defaults shared across fluxstage services."""

PRODUCTION_BRANCHES = ("main", "master")

PROD_INSTANCE = "prod"
DEV_FLUX_INSTANCE = "dev"
DEFAULT_APP_INSTANCE = "test"

PROD_PROJECT = "uwit-mci-0011"
DEV_PROJECT = "uwit-mci-0010"

GITHUB_OWNER = "uw-it-aca"
GITHUB_HOST = "github.com"
GITHUB_API_URL = "https://api.github.com"
FLUX_BASE_BRANCH = "master"

HELM_CHART_NAME = "django-production-chart"
HELM_CHART_BRANCH = "master"
HELM_APP_VERSION = "3.4.2"
HELM_IMAGE = "alpine/helm"
VALUES_DIR = "docker"

KUBEVAL_IMAGE = "garethr/kubeval"
KUBEVAL_VERSION = "latest"
KUBEVAL_SKIP_KINDS = "ExternalSecret,ServiceMonitor"

CHECKOV_IMAGE = "bridgecrew/checkov"
CHECKOV_VERSION = "latest"
# accepted policy violations:
#    CKV_K8S_21 - default namespace policy
#    CKV_K8S_35 - secret files preferred over environment
#    CKV_K8S_43 - image reference by digest
CHECKOV_SKIP_CHECKS = "CKV_K8S_21,CKV_K8S_35,CKV_K8S_43"

SECRET_PLACEHOLDER = "[secret]"
DRY_RUN_PREFIX = "WOULD: "
REPORT_FILE_NAME = "fluxstage-report.json"
