from UtilityController import *

from google.cloud import resourcemanager_v3
from google.iam.v1 import iam_policy_pb2, options_pb2
from googleapiclient.errors import HttpError

from google.api_core.exceptions import PermissionDenied
from google.api_core.exceptions import NotFound
from google.api_core.exceptions import Forbidden
from google.api_core.exceptions import GoogleAPICallError

# Version 3 is the only one that returns conditional bindings intact
REQUESTED_POLICY_VERSION = 3

API_DISABLED_MESSAGE = "Cloud Resource Manager API has not been used in project"

def handle_api_core_error(e, resource_name, permission):

    if isinstance(e, (Forbidden, PermissionDenied)):
        if API_DISABLED_MESSAGE in str(e):
            UtilityTools.print_403_api_disabled("Resource Manager", resource_name)
        else:
            UtilityTools.print_403_api_denied(permission, resource_name = resource_name)

    elif isinstance(e, NotFound):
        UtilityTools.print_404_resource(resource_name)

    else:
        UtilityTools.print_500(resource_name, permission, e)

    raise CollaboratorError(f"{permission} failed for {resource_name}: {e}", permission = permission, resource = resource_name) from e

def handle_http_error(e, resource_name, permission):

    status = getattr(e.resp, "status", None)
    if status == 403:
        UtilityTools.print_403_api_denied(permission, resource_name = resource_name)
    elif status == 404:
        UtilityTools.print_404_resource(resource_name)
    else:
        UtilityTools.print_500(resource_name, permission, e)

    raise CollaboratorError(f"{permission} failed for {resource_name}: {e}", permission = permission, resource = resource_name) from e


###### Search/List Orgs/Folders/Projects
def search_organizations(organization_client, debug=False):

    UtilityTools.print_debug("Searching organizations in domain", debug)

    try:

        request = resourcemanager_v3.SearchOrganizationsRequest()
        organizations_list = list(organization_client.search_organizations(request=request))

    except GoogleAPICallError as e:
        handle_api_core_error(e, "Current Organization", "resourcemanager.organizations.get")

    UtilityTools.print_debug("Successfully completed search_organizations...", debug)

    return organizations_list

def search_projects(project_client, query, debug=False):

    UtilityTools.print_debug(f"Searching projects matching '{query}'", debug)

    try:

        request = resourcemanager_v3.SearchProjectsRequest(
            query=query
        )
        projects_list = list(project_client.search_projects(request=request))

    except GoogleAPICallError as e:
        handle_api_core_error(e, query, "resourcemanager.projects.get")

    UtilityTools.print_debug("Successfully completed search_projects...", debug)

    return projects_list

def list_folders(folder_service, parent_id, debug=False):

    UtilityTools.print_debug(f"Listing folders under {parent_id}", debug)

    folders_list = []

    try:

        folders = folder_service.folders()
        request = folders.list(parent=parent_id)
        while request is not None:
            response = request.execute()
            folders_list.extend(response.get("folders", []))
            request = folders.list_next(previous_request=request, previous_response=response)

    except HttpError as e:
        handle_http_error(e, parent_id, "resourcemanager.folders.list")

    UtilityTools.print_debug("Successfully completed list_folders...", debug)

    return folders_list


###### Ancestry
class Ancestor:

    def __init__(self, resource_id, resource_type):
        self.resource_id = resource_id
        self.resource_type = resource_type

    def __eq__(self, other):
        return isinstance(other, Ancestor) and (self.resource_id, self.resource_type) == (other.resource_id, other.resource_type)

    def __repr__(self):
        return f"Ancestor(type={self.resource_type}, id={self.resource_id})"

def convert_ancestors(response):
    """
    getAncestry response -> [Ancestor, ...], innermost (the project) first.

    Anything that doesn't look like {"ancestor": [{"resourceId": {"id", "type"}}]}
    is rejected rather than treated as an empty ancestry.
    """

    if not isinstance(response, dict) or not isinstance(response.get("ancestor"), list):
        raise CollaboratorError(f"Unexpected getAncestry response shape: {response!r}", permission = "resourcemanager.projects.get")

    ancestors = []
    for entry in response["ancestor"]:
        resource_id = entry.get("resourceId") if isinstance(entry, dict) else None
        if not isinstance(resource_id, dict) or not resource_id.get("id") or not resource_id.get("type"):
            raise CollaboratorError(f"Unexpected ancestor entry in getAncestry response: {entry!r}", permission = "resourcemanager.projects.get")
        ancestors.append(Ancestor(resource_id["id"], resource_id["type"]))

    return ancestors

def get_project_ancestry(ancestry_service, project_id, debug=False):

    UtilityTools.print_debug(f"Getting ancestry for {project_id} ...", debug)

    try:
        response = ancestry_service.projects().getAncestry(projectId=project_id, body={}).execute()

    except HttpError as e:
        handle_http_error(e, project_id, "resourcemanager.projects.get")

    return convert_ancestors(response)


###### Get IAM Policies
def organization_get_iam_policy(organization_client, organization_name, debug = False):

    UtilityTools.print_debug(f"Getting IAM bindings for {organization_name} ...", debug)

    try:

        request = iam_policy_pb2.GetIamPolicyRequest(
            resource=organization_name,
            options=options_pb2.GetPolicyOptions(requested_policy_version=REQUESTED_POLICY_VERSION)
        )
        organization_iam_policy = organization_client.get_iam_policy(request=request)

    except GoogleAPICallError as e:
        handle_api_core_error(e, organization_name, "resourcemanager.organizations.getIamPolicy")

    UtilityTools.print_debug("Successfully completed organizations getIamPolicy ..", debug)

    return organization_iam_policy

def project_get_iam_policy(project_client, project_name, debug = False):

    UtilityTools.print_debug(f"Getting IAM bindings for {project_name} ...", debug)

    try:

        request = iam_policy_pb2.GetIamPolicyRequest(
            resource=project_name,
            options=options_pb2.GetPolicyOptions(requested_policy_version=REQUESTED_POLICY_VERSION)
        )
        project_iam_policy = project_client.get_iam_policy(request=request)

    except GoogleAPICallError as e:
        handle_api_core_error(e, project_name, "resourcemanager.projects.getIamPolicy")

    UtilityTools.print_debug("Successfully completed projects getIamPolicy ..", debug)

    return project_iam_policy

def folder_get_iam_policy(folder_service, folder_name, debug = False):

    UtilityTools.print_debug(f"Getting IAM bindings for {folder_name} ...", debug)

    try:

        body = {"options": {"requestedPolicyVersion": REQUESTED_POLICY_VERSION}}
        folder_iam_policy = folder_service.folders().getIamPolicy(resource=folder_name, body=body).execute()

    except HttpError as e:
        handle_http_error(e, folder_name, "resourcemanager.folders.getIamPolicy")

    UtilityTools.print_debug("Successfully completed folders getIamPolicy ..", debug)

    return folder_iam_policy
