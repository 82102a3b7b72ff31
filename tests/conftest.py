"""In-memory stand-ins for the Google API clients used by the exporter."""

import httplib2
import pytest
from google.api_core.exceptions import NotFound, PermissionDenied
from google.cloud import iam_admin_v1, resourcemanager_v3
from google.iam.v1 import policy_pb2
from googleapiclient.errors import HttpError


def http_error(status, message="error"):
    return HttpError(httplib2.Response({"status": str(status)}), message.encode())


def protobuf_policy(bindings, etag=b"\x01\x02", version=1):
    policy = policy_pb2.Policy(etag=etag, version=version)
    for role, members in bindings:
        policy.bindings.add(role=role, members=members)
    return policy


class FakeRequest:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.response


class FakeFolders:

    def __init__(self, service):
        self.service = service

    def list(self, parent):
        self.service.calls.append(("list", parent))
        pages = self.service.folder_pages.get(parent, [[]])
        return self._page_request(parent, 0, pages)

    def list_next(self, previous_request, previous_response):
        parent, index = previous_request.page
        pages = self.service.folder_pages.get(parent, [[]])
        if index + 1 >= len(pages):
            return None
        return self._page_request(parent, index + 1, pages)

    def _page_request(self, parent, index, pages):
        response = {"folders": pages[index]}
        if index + 1 < len(pages):
            response["nextPageToken"] = f"page-{index + 1}"
        request = FakeRequest(response=response, error=self.service.list_error)
        request.page = (parent, index)
        return request

    def getIamPolicy(self, resource, body):
        self.service.calls.append(("getIamPolicy", resource))
        if resource in self.service.policy_errors:
            return FakeRequest(error=self.service.policy_errors[resource])
        return FakeRequest(response=self.service.policies.get(resource, {"etag": "BwE="}))


class FakeFolderService:
    """cloudresourcemanager v2 discovery service."""

    def __init__(self, folder_pages=None, policies=None, policy_errors=None, list_error=None):
        self.folder_pages = folder_pages or {}
        self.policies = policies or {}
        self.policy_errors = policy_errors or {}
        self.list_error = list_error
        self.calls = []

    def folders(self):
        return FakeFolders(self)


class FakeAncestryProjects:

    def __init__(self, service):
        self.service = service

    def getAncestry(self, projectId, body):
        self.service.calls.append(projectId)
        if self.service.error is not None:
            return FakeRequest(error=self.service.error)
        return FakeRequest(response=self.service.responses[projectId])


class FakeAncestryService:
    """cloudresourcemanager v1 discovery service."""

    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.calls = []

    def projects(self):
        return FakeAncestryProjects(self)


class FakeResourceManagerClient:
    """Covers both resourcemanager_v3.OrganizationsClient and ProjectsClient."""

    def __init__(self, policies=None, policy_errors=None, projects=None, organizations=None, search_error=None):
        self.policies = policies or {}
        self.policy_errors = policy_errors or {}
        self.projects = projects or []
        self.organizations = organizations or []
        self.search_error = search_error
        self.policy_calls = []
        self.search_queries = []

    def get_iam_policy(self, request):
        self.policy_calls.append(request.resource)
        if request.resource in self.policy_errors:
            raise self.policy_errors[request.resource]
        return self.policies.get(request.resource, policy_pb2.Policy())

    def search_projects(self, request):
        self.search_queries.append(request.query)
        if self.search_error is not None:
            raise self.search_error
        return iter(self.projects)

    def search_organizations(self, request):
        if self.search_error is not None:
            raise self.search_error
        return iter(self.organizations)


class FakeIamClient:

    def __init__(self, roles=None, denied=None):
        self.roles = roles or {}
        self.denied = set(denied or [])
        self.calls = []

    def get_role(self, request):
        self.calls.append(request.name)
        if request.name in self.denied:
            raise PermissionDenied(f"Permission 'iam.roles.get' denied on resource '{request.name}'")
        if request.name not in self.roles:
            raise NotFound(f"The role named {request.name} was not found.")
        return iam_admin_v1.Role(name=request.name, included_permissions=self.roles[request.name])


def make_project(project_id, number="1000", display_name=None):
    return resourcemanager_v3.Project(
        name=f"projects/{number}",
        project_id=project_id,
        display_name=display_name or project_id,
    )


@pytest.fixture
def iam_client():
    return FakeIamClient(roles={
        "roles/viewer": ["permA", "permB"],
        "roles/editor": ["permC"],
    })


@pytest.fixture
def organization_clients(iam_client):
    """Organization O with folder F (no bindings) and project P."""

    org_client = FakeResourceManagerClient(policies={
        "organizations/O": protobuf_policy([("roles/viewer", ["user:a@x.com", "group:g@x.com"])]),
    })
    project_client = FakeResourceManagerClient(
        policies={"projects/P": protobuf_policy([("roles/editor", ["user:b@x.com"])])},
        projects=[make_project("P")],
    )
    folder_service = FakeFolderService(
        folder_pages={"organizations/O": [[{"name": "folders/F", "displayName": "F"}]]},
        policies={"folders/F": {"etag": "BwE=", "version": 1}},
    )

    return {
        "org": org_client,
        "project": project_client,
        "folder": folder_service,
        "ancestry": FakeAncestryService(),
        "iam": iam_client,
    }
