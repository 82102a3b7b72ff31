from Modules.ResourceManager.utils.util_helpers import *
from session import get_project_id_from_credentials

class HashableResource:
    """
    A node of the organization hierarchy as far as policy export cares about it.

    resource_id is what ends up in the exported rows (bare organization id,
    folders/<n> for folders, project id for projects) and policy_name is the
    full resource name the getIamPolicy call expects.
    """

    def __init__(self, resource_id, r_type, display_name = None):
        self.resource_id = resource_id
        self.r_type = r_type
        self.display_name = display_name

    @classmethod
    def from_organization_id(cls, organization_id):
        return cls(organization_id, "organization")

    @classmethod
    def from_folder(cls, folder):
        return cls(folder["name"], "folder", display_name = folder.get("displayName"))

    @classmethod
    def from_project(cls, project):
        return cls(project.project_id, "project", display_name = project.display_name)

    @property
    def policy_name(self):
        if self.r_type == "organization":
            return f"organizations/{self.resource_id}"
        elif self.r_type == "project":
            return f"projects/{self.resource_id}"
        return self.resource_id

    def __hash__(self):
        return hash((self.r_type, self.resource_id))

    def __eq__(self, other):
        return isinstance(other, HashableResource) and (self.r_type, self.resource_id) == (other.r_type, other.resource_id)

    def __repr__(self):
        return f"HashableResource(type={self.r_type}, id={self.resource_id})"


##### Organization Tiers
def list_organization_folders(folder_service, organization_id, debug=False):
    folders = list_folders(folder_service, f"organizations/{organization_id}", debug=debug)
    return [HashableResource.from_folder(folder) for folder in folders]

# Direct children of the organization only, folder placement is not followed
def list_organization_projects(project_client, organization_id, debug=False):
    query = f"parent.type:organization parent.id:{organization_id}"
    projects = search_projects(project_client, query, debug=debug)
    return [HashableResource.from_project(project) for project in projects]


##### Organization ID Resolution
def get_org_id_from_project_id(ancestry_service, project_id, debug=False):

    try:
        ancestry = get_project_ancestry(ancestry_service, project_id, debug=debug)
    except CollaboratorError as e:
        raise ConfigurationError(
            f"Unable to get org for project {project_id}: {e}",
            reason = ConfigurationError.ANCESTRY_LOOKUP_FAILED
        ) from e

    if not ancestry or ancestry[-1].resource_type != "organization":
        raise ConfigurationError(
            f"Project {project_id} does not belong to an organization (ancestry: {ancestry!r})",
            reason = ConfigurationError.NO_ORGANIZATION_ANCESTOR
        )

    organization_id = ancestry[-1].resource_id
    print(f"[*] OrgId of {organization_id} found from Project ID {project_id}")

    return organization_id

def resolve_organization_id(ancestry_service, organization_id = None, project_id = None, credentials_path = None, debug = False):
    """
    Explicit organization id, else the organization above the explicit
    project, else the organization above the project the credentials belong to.
    """

    if organization_id:
        return organization_id

    print("[*] OrgId not specified, checking by ProjectId")

    if not project_id:
        print("[*] ProjectId not specified, getting ProjectId from credentials")
        project_id = get_project_id_from_credentials(credentials_path, debug=debug)

    return get_org_id_from_project_id(ancestry_service, project_id, debug=debug)


##### Organization Listing
def list_organizations(organization_client, debug=False):

    print("[*] Searching Organizations")

    organizations = search_organizations(organization_client, debug=debug)

    if len(organizations) == 0:
        print(f"{UtilityTools.RED}[X] No organizations were found.{UtilityTools.RESET}")
        return organizations

    table = PrettyTable(["name", "display_name", "directory_customer_id"])
    for org in organizations:
        table.add_row([org.name, org.display_name, org.directory_customer_id])
    table.align = "l"
    print(table)

    return organizations
