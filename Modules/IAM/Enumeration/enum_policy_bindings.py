from Modules.IAM.utils.util_helpers import *
from Modules.ResourceManager.Enumeration.enum_resources import *

class PolicyRow:

    def __init__(self, resource, resource_type, role, member, permissions = None):
        self.resource = resource
        self.resource_type = resource_type
        self.role = role
        self.member = member
        self.permissions = permissions

    def as_tuple(self):
        return (self.resource, self.resource_type, self.role, self.member, self.permissions)

    def __eq__(self, other):
        return isinstance(other, PolicyRow) and self.as_tuple() == other.as_tuple()

    def __repr__(self):
        return f"PolicyRow(resource={self.resource}, type={self.resource_type}, role={self.role}, member={self.member})"


########## Binding Flattener
def flatten_policy(policy, resource):
    """
    One row per (binding, member), in binding order then member order.
    Nothing is deduplicated.
    """

    rows = []
    for binding in policy.bindings:
        for member in binding.members:
            rows.append(PolicyRow(resource.resource_id, resource.r_type, binding.role, member))
    return rows

def attach_permissions(rows, role_resolver):

    for row in rows:
        try:
            row.permissions = role_resolver.resolve(row.resource_type, row.resource, row.role)
        except ResolutionError as e:
            UtilityTools.print_error(f"Error getting permissions for {row.role} on {row.resource}: {e}")
            row.permissions = [UNKNOWN_PERMISSION]

    return rows


########## Aggregator
def get_resource_policy(clients, resource, debug=False):

    if resource.r_type == "organization":
        raw_policy = organization_get_iam_policy(clients["org"], resource.policy_name, debug=debug)
    elif resource.r_type == "project":
        raw_policy = project_get_iam_policy(clients["project"], resource.policy_name, debug=debug)
    elif resource.r_type == "folder":
        raw_policy = folder_get_iam_policy(clients["folder"], resource.policy_name, debug=debug)
    else:
        raise ValueError(f"Unknown resource type {resource.r_type!r}")

    return normalize_policy(raw_policy, SCHEMA_FOR_KIND[resource.r_type])

def collect_resource_rows(clients, resource, role_resolver, debug=False):

    try:
        policy = get_resource_policy(clients, resource, debug=debug)
    except CollaboratorError:
        UtilityTools.print_error(f"Unable to get more info on {resource.r_type} {resource.resource_id}")
        raise

    rows = flatten_policy(policy, resource)
    return attach_permissions(rows, role_resolver)

def collect_tier_rows(clients, resources, role_resolver, debug=False):

    rows = []
    for resource in resources:
        rows.extend(collect_resource_rows(clients, resource, role_resolver, debug=debug))
    return rows

def collect_all_policy_rows(clients, organization_id, role_resolver = None, debug=False):
    """
    Organization policy first, then every folder directly under it, then every
    project directly under it. Any listing or getIamPolicy failure propagates
    and no rows come back at all; a role that can't be resolved only marks its
    rows UNKNOWN.
    """

    if role_resolver is None:
        role_resolver = RoleResolver(clients["iam"], debug=debug)

    organization = HashableResource.from_organization_id(organization_id)

    print(f"[*] Checking IAM Policy for Organization {organization_id}...")
    all_rows = collect_resource_rows(clients, organization, role_resolver, debug=debug)

    print("[*] Checking IAM Policy for Folders...")
    folders = list_organization_folders(clients["folder"], organization_id, debug=debug)
    all_rows.extend(collect_tier_rows(clients, folders, role_resolver, debug=debug))

    print("[*] Checking IAM Policy for Projects...")
    projects = list_organization_projects(clients["project"], organization_id, debug=debug)
    all_rows.extend(collect_tier_rows(clients, projects, role_resolver, debug=debug))

    UtilityTools.print_debug(f"Role lookups: {role_resolver.lookups}, cached roles: {len(role_resolver.cached_uris)}", debug)

    return all_rows


########## Export
def run_module(config, session, clients = None):

    debug = config.debug

    if os.path.exists(config.output_file):
        print(f"[*] File {config.output_file} found, skipping export roles")
        return None

    if clients is None:
        clients = session.build_clients()

    organization_id = resolve_organization_id(
        clients["ancestry"],
        organization_id = config.organization_id,
        project_id = config.project_id,
        credentials_path = config.credentials_path,
        debug = debug
    )

    all_rows = collect_all_policy_rows(clients, organization_id, debug=debug)

    print("[*] Printing CSV")
    start = time.monotonic()
    lines = UtilityTools.export_csv(config.output_file, all_rows)
    UtilityTools.time_track(start, "Printing CSV")
    print(f"{UtilityTools.GREEN}{UtilityTools.BOLD}[*] Wrote {lines} permission lines to {config.output_file}{UtilityTools.RESET}")

    if config.output_formats:
        UtilityTools.summary_wrapup(organization_id, all_rows, output_format = config.output_formats)

    return all_rows
