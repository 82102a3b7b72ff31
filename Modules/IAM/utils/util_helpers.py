import base64
from google.cloud import iam_admin_v1
from UtilityController import *

from google.api_core.exceptions import PermissionDenied
from google.api_core.exceptions import NotFound
from google.api_core.exceptions import Forbidden
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import RefreshError, TransportError

UNKNOWN_PERMISSION = "UNKNOWN"

# Organizations/projects come back from resourcemanager_v3 as protobuf, folders from the v2 JSON API
SCHEMA_V1 = "v1"
SCHEMA_V2 = "v2"

SCHEMA_FOR_KIND = {
    "organization": SCHEMA_V1,
    "project": SCHEMA_V1,
    "folder": SCHEMA_V2
}

########## Canonical Policy Shape
class Expr:

    def __init__(self, title = "", description = "", expression = "", location = ""):
        self.title = title
        self.description = description
        self.expression = expression
        self.location = location

    def __eq__(self, other):
        return isinstance(other, Expr) and vars(self) == vars(other)

    def __repr__(self):
        return f"Expr(title={self.title!r}, expression={self.expression!r})"

class Binding:

    def __init__(self, role, members, condition = None):
        self.role = role
        self.members = list(members)
        self.condition = condition

    def __eq__(self, other):
        return isinstance(other, Binding) and vars(self) == vars(other)

    def __repr__(self):
        return f"Binding(role={self.role!r}, members={self.members!r}, condition={self.condition!r})"

class Policy:

    # etag is informational only, nothing is ever written back
    def __init__(self, bindings = None, etag = "", version = 0):
        self.bindings = list(bindings) if bindings else []
        self.etag = etag
        self.version = version

    def __eq__(self, other):
        return isinstance(other, Policy) and vars(self) == vars(other)

    def __repr__(self):
        return f"Policy(etag={self.etag!r}, bindings={len(self.bindings)})"


########## Policy Normalizer
def expr_from_protobuf(expr):
    return Expr(
        title = expr.title,
        description = expr.description,
        expression = expr.expression,
        location = expr.location
    )

def expr_from_json(expr):
    return Expr(
        title = expr.get("title", ""),
        description = expr.get("description", ""),
        expression = expr.get("expression", ""),
        location = expr.get("location", "")
    )

def policy_from_protobuf(policy):
    """
    google.iam.v1.policy_pb2.Policy -> Policy

    Condition is only copied when the binding actually carries one; an empty
    condition message still counts as present.
    """

    bindings = []
    for binding in policy.bindings:
        condition = None
        if binding.HasField("condition"):
            condition = expr_from_protobuf(binding.condition)
        bindings.append(Binding(binding.role, binding.members, condition = condition))

    etag = base64.b64encode(policy.etag).decode("ascii") if policy.etag else ""

    return Policy(bindings = bindings, etag = etag, version = policy.version)

def policy_from_json(policy):
    """
    cloudresourcemanager v2 JSON policy (dict) -> Policy
    """

    bindings = []
    for binding in policy.get("bindings", []):
        condition = None
        if binding.get("condition") is not None:
            condition = expr_from_json(binding["condition"])
        bindings.append(Binding(binding.get("role", ""), binding.get("members", []), condition = condition))

    return Policy(bindings = bindings, etag = policy.get("etag", ""), version = int(policy.get("version", 0)))

def normalize_policy(raw_policy, schema_version):

    if schema_version == SCHEMA_V1:
        return policy_from_protobuf(raw_policy)
    elif schema_version == SCHEMA_V2:
        return policy_from_json(raw_policy)

    raise ValueError(f"Unknown policy schema version {schema_version!r}")


########## Roles
def get_role(iam_client, role_name, debug=False):

    UtilityTools.print_debug(f"Getting {role_name} ..", debug)

    try:
        request = iam_admin_v1.GetRoleRequest(
            name=role_name
        )
        role = iam_client.get_role(request=request)

    except (Forbidden, PermissionDenied) as e:
        UtilityTools.print_debug(f"403: The user does not have iam.roles.get permissions on {role_name}", debug)
        raise CollaboratorError(str(e), permission = "iam.roles.get", resource = role_name) from e

    except NotFound as e:
        UtilityTools.print_debug(f"404: The role named {role_name} was not found", debug)
        raise CollaboratorError(str(e), permission = "iam.roles.get", resource = role_name) from e

    # Deadlines on the default retry and token refresh problems land here
    except (GoogleAPIError, RefreshError, TransportError) as e:
        UtilityTools.print_debug(f"iam.roles.get failed for {role_name}: {e}", debug)
        raise CollaboratorError(str(e), permission = "iam.roles.get", resource = role_name) from e

    UtilityTools.print_debug(f"Successfully completed iam.roles.get for {role_name} ..", debug)

    return role

class RoleResolver:
    """
    Resolves the role reference of a binding to the permissions it grants.

    Bindings on projects and organizations can name a custom role by its short
    name, so a scoped URI ({kind}s/{id}/roles/{role}) is tried first and the
    reference itself second. Folders only ever use the reference verbatim.

    Successful lookups are cached under the URI that answered. The cache
    belongs to this instance, so build one resolver per export run.
    """

    SCOPED_KINDS = ("project", "organization")

    def __init__(self, iam_client, debug = False):
        self.iam_client = iam_client
        self.debug = debug
        self.role_map = {}
        self.lookups = 0

    def candidate_uris(self, resource_type, resource_id, role):
        uris = []
        if resource_type in self.SCOPED_KINDS:
            uris.append(f"{resource_type}s/{resource_id}/roles/{role}")
        uris.append(role)
        return uris

    def get_role_by_uri(self, uri):

        if uri in self.role_map:
            return self.role_map[uri]

        self.lookups += 1
        role = get_role(self.iam_client, uri, debug = self.debug)
        self.role_map[uri] = role
        return role

    def resolve(self, resource_type, resource_id, role):

        tried = []
        for uri in self.candidate_uris(resource_type, resource_id, role):
            tried.append(uri)
            try:
                resolved = self.get_role_by_uri(uri)
            except CollaboratorError:
                continue
            return list(resolved.included_permissions)

        raise ResolutionError(role, tried)

    @property
    def cached_uris(self):
        return sorted(self.role_map.keys())
