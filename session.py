import os
import google.auth
import googleapiclient.discovery  # type: ignore
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import iam_admin_v1, resourcemanager_v3
from UtilityController import *

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

########## Credential Discovery
# Returns (credentials_found, project_id)
def get_default_project_id(debug = False):

    try:
        credentials, project_id = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    except DefaultCredentialsError as e:
        UtilityTools.print_debug(f"Application default credentials not available: {e}", debug)
        return False, None

    return True, project_id

def load_file_credentials(credentials_path):

    if not os.path.exists(credentials_path):
        raise ConfigurationError(
            f"Unable to stat credential file {credentials_path}",
            reason = ConfigurationError.CREDENTIALS_FILE_UNREADABLE
        )

    try:
        credentials, project_id = google.auth.load_credentials_from_file(credentials_path, scopes=[CLOUD_PLATFORM_SCOPE])
    except (DefaultCredentialsError, OSError, ValueError) as e:
        raise ConfigurationError(
            f"Error getting credentials from data in {credentials_path}: {e}",
            reason = ConfigurationError.CREDENTIALS_FILE_UNREADABLE
        ) from e

    return credentials, project_id

def get_file_project_id(credentials_path):
    credentials, project_id = load_file_credentials(credentials_path)
    return project_id

def get_project_id_from_credentials(credentials_path = None, debug = False):
    """
    Application default credentials are checked first, then the explicit
    credentials file. Each way this can fail raises a ConfigurationError with
    its own reason so the caller can say why.
    """

    credentials_found, project_id = get_default_project_id(debug = debug)
    if project_id:
        print(f"[*] Project ID found from default credentials: {project_id}")
        return project_id

    if not credentials_path and credentials_found:
        raise ConfigurationError(
            "Application default credentials carry no project, please specify a project or credentials json",
            reason = ConfigurationError.NO_PROJECT_IN_CREDENTIALS
        )

    if not credentials_path:
        raise ConfigurationError(
            "Unable to get application default credentials, please specify credentials json",
            reason = ConfigurationError.NO_CREDENTIALS
        )

    project_id = get_file_project_id(credentials_path)
    if not project_id:
        raise ConfigurationError(
            "No project found in either application default credentials or json file",
            reason = ConfigurationError.NO_PROJECT_IN_CREDENTIALS
        )

    print(f"[*] Project ID found from supplied credentials: {project_id}")
    return project_id


class ExportSession:

    def __init__(self, credentials_path = None, debug = False):
        self.credentials_path = credentials_path
        self.debug = debug
        self.credentials = None
        self.project_id = None

    def load_credentials(self):

        if self.credentials_path:
            print(f"[*] Loading credentials from {self.credentials_path}...")
            self.credentials, self.project_id = load_file_credentials(self.credentials_path)
            return self.credentials

        try:
            print("[*] Loading in ADC credentials...")
            self.credentials, self.project_id = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])

        except DefaultCredentialsError as e:
            print(f"{UtilityTools.RED}{UtilityTools.BOLD}[X] ADC not setup. See below for next steps:{UtilityTools.RESET}")
            print("   a) From command line, Run 'gcloud auth application-default login' and sign in")
            print("   b) Or pass a service account key via '--credentials <file>'")
            raise ConfigurationError(str(e), reason = ConfigurationError.NO_CREDENTIALS) from e

        return self.credentials

    def build_clients(self):

        if self.credentials is None:
            self.load_credentials()

        return {
            "org": resourcemanager_v3.OrganizationsClient(credentials=self.credentials),
            "project": resourcemanager_v3.ProjectsClient(credentials=self.credentials),
            "folder": googleapiclient.discovery.build("cloudresourcemanager", "v2", credentials=self.credentials, cache_discovery=False),
            "ancestry": googleapiclient.discovery.build("cloudresourcemanager", "v1", credentials=self.credentials, cache_discovery=False),
            "iam": iam_admin_v1.IAMClient(credentials=self.credentials),
        }
